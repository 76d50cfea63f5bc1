"""
Booking domain model.

Represents a facility/service reservation as stored in the bookings table.
Store records use camelCase keys; the model exposes snake_case attributes and
keeps any unknown keys in `extra_fields` so they round-trip untouched.
"""

from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum
from typing import Dict, Any, Optional


class BookingStatus(str, Enum):
    """Booking lifecycle states."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Attribute name -> store key
FIELD_MAP: Dict[str, str] = {
    "id": "id",
    "preferred_date": "preferredDate",
    "start_time": "startTime",
    "status": "status",
    "service_name": "serviceName",
    "service_duration": "serviceDuration",
    "number_of_people": "numberOfPeople",
    "venue": "venue",
    "member_email": "memberEmail",
    "member_name": "memberName",
    "total_amount": "totalAmount",
    "payment_status": "paymentStatus",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}

STORE_KEYS = {store_key: attr for attr, store_key in FIELD_MAP.items()}


def _plain_number(value: Any) -> Any:
    """DynamoDB hands numbers back as Decimal; unwrap to int/float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


@dataclass
class Booking:
    """
    Booking record.

    Attributes:
        id: Unique identifier (immutable)
        preferred_date: ISO date string, possibly with a time/offset suffix
        start_time: 24-hour "HH:MM" string
        status: One of BookingStatus values; unknown strings are kept as-is
            and a missing status stays None
        service_name: Service label, e.g. "Hall Hire: Main Hall"
        service_duration: Duration in hours
        number_of_people: Attendee count
        venue: Venue name
        member_email: Contact e-mail of the booking member
        member_name: Contact name
        total_amount: Total including any cleaning fee
        payment_status: "unpaid" or "paid"
        created_at / updated_at: ISO timestamps
        extra_fields: Any other store attributes
    """

    id: str
    preferred_date: Optional[str] = None
    start_time: Optional[str] = None
    status: Optional[str] = None
    service_name: Optional[str] = None
    service_duration: Optional[float] = None
    number_of_people: Optional[int] = None
    venue: Optional[str] = None
    member_email: Optional[str] = None
    member_name: Optional[str] = None
    total_amount: Optional[float] = None
    payment_status: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    extra_fields: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.status, BookingStatus):
            self.status = self.status.value

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Booking":
        """
        Create a Booking from a store record.

        Accepts camelCase store keys (and snake_case attribute names, so
        seed files can use either). Unknown keys land in extra_fields.

        Raises:
            ValueError: If the record has no id
        """
        core: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}

        for key, value in data.items():
            value = _plain_number(value)
            if key in STORE_KEYS:
                core[STORE_KEYS[key]] = value
            elif key in FIELD_MAP:
                core[key] = value
            else:
                extra[key] = value

        if core.get("id") in (None, ""):
            raise ValueError("Booking record is missing 'id'")

        core["id"] = str(core["id"])
        return cls(**core, extra_fields=extra)

    def to_dict(self, include_extra: bool = True) -> Dict[str, Any]:
        """
        Convert to a camelCase store record, dropping unset (None) attributes.

        Args:
            include_extra: If True, flatten extra_fields into the output
        """
        data: Dict[str, Any] = {}
        for f in fields(self):
            if f.name == "extra_fields":
                continue
            value = getattr(self, f.name)
            if value is not None:
                data[FIELD_MAP[f.name]] = value

        if include_extra:
            for key, value in self.extra_fields.items():
                data.setdefault(key, value)

        return data

    @property
    def is_pending(self) -> bool:
        return self.status == BookingStatus.PENDING.value

    def get_field(self, field_name: str, default: Any = None) -> Any:
        """
        Look up an attribute by snake_case name, store key, or extra field.
        """
        if field_name in FIELD_MAP:
            return getattr(self, field_name)
        if field_name in STORE_KEYS:
            return getattr(self, STORE_KEYS[field_name])
        return self.extra_fields.get(field_name, default)
