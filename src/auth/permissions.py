"""
Role-based authorization policy for the admin back office.

Identity verification happens upstream (API Gateway Cognito authorizer).
Here we only map the caller's groups to a role and the role to the set of
capabilities the presentation and API layers may offer.
"""

import json
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

import jsonschema
import yaml

from src.utils.logger import get_logger

logger = get_logger(__name__)


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"
    ANONYMOUS = "anonymous"


class Capability(str, Enum):
    VIEW_BOOKINGS = "view_bookings"
    VIEW_OWN_BOOKINGS = "view_own_bookings"
    APPROVE_BOOKING = "approve_booking"
    EDIT_BOOKING = "edit_booking"
    DELETE_BOOKING = "delete_booking"
    VIEW_STATS = "view_stats"
    MANAGE_CONTENT = "manage_content"
    MANAGE_MEMBERS = "manage_members"
    MANAGE_DONATIONS = "manage_donations"
    MANAGE_USERS = "manage_users"
    VIEW_MESSAGES = "view_messages"
    MANAGE_DOCUMENTS = "manage_documents"


ADMIN_GROUPS = {"Admin", "AnmcAdmins"}
MANAGER_GROUPS = {"AnmcManagers", "ANMCMembers"}

DEFAULT_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.MANAGER: frozenset(
        {
            Capability.VIEW_BOOKINGS,
            Capability.APPROVE_BOOKING,
            Capability.EDIT_BOOKING,
            Capability.VIEW_STATS,
            Capability.VIEW_MESSAGES,
            Capability.MANAGE_DOCUMENTS,
        }
    ),
    Role.MEMBER: frozenset({Capability.VIEW_OWN_BOOKINGS, Capability.VIEW_STATS}),
    Role.ANONYMOUS: frozenset({Capability.VIEW_STATS}),
}

# Admin resource -> capability that makes it visible in the menu
RESOURCE_CAPABILITIES: Dict[str, Capability] = {
    "homepage": Capability.MANAGE_CONTENT,
    "counters": Capability.MANAGE_CONTENT,
    "news": Capability.MANAGE_CONTENT,
    "events": Capability.MANAGE_CONTENT,
    "projects": Capability.MANAGE_CONTENT,
    "facilities": Capability.MANAGE_CONTENT,
    "about_us": Capability.MANAGE_CONTENT,
    "contact": Capability.MANAGE_CONTENT,
    "faqs": Capability.MANAGE_CONTENT,
    "donations": Capability.MANAGE_DONATIONS,
    "members": Capability.MANAGE_MEMBERS,
    "users": Capability.MANAGE_USERS,
    "messages": Capability.VIEW_MESSAGES,
    "bookings": Capability.VIEW_BOOKINGS,
    "documents": Capability.MANAGE_DOCUMENTS,
}


def parse_groups(raw: object) -> List[str]:
    """
    Normalize the `cognito:groups` claim.

    API Gateway passes it either as a list or as a string such as
    "[Admin, AnmcManagers]" or "Admin,AnmcManagers".
    """
    if raw is None:
        return []
    if isinstance(raw, (list, tuple, set)):
        return [str(g).strip() for g in raw if str(g).strip()]

    text = str(raw).strip()
    if text.startswith("[") and text.endswith("]"):
        text = text[1:-1]
    return [part.strip().strip('"') for part in text.replace(",", " ").split() if part.strip()]


def role_from_groups(groups: Optional[Iterable[str]], authenticated: bool = True) -> Role:
    """
    Map identity-provider groups to a role; admin wins over manager.

    Args:
        groups: Group names from the token
        authenticated: Whether the caller presented a verified identity
    """
    group_set = set(groups or [])
    if group_set & ADMIN_GROUPS:
        return Role.ADMIN
    if group_set & MANAGER_GROUPS:
        return Role.MANAGER
    if authenticated:
        return Role.MEMBER
    return Role.ANONYMOUS


class PermissionPolicy:
    """
    Role -> capability mapping consulted by the API and presentation layers.
    """

    def __init__(self, capabilities: Optional[Mapping[Role, Iterable[Capability]]] = None):
        source = capabilities if capabilities is not None else DEFAULT_CAPABILITIES
        self._capabilities: Dict[Role, FrozenSet[Capability]] = {
            role: frozenset(source.get(role, ())) for role in Role
        }

    @classmethod
    def from_file(cls, policy_path: str, schema_path: str) -> "PermissionPolicy":
        """
        Load a policy from YAML and validate it against a JSON schema.

        Roles missing from the file get no capabilities.

        Raises:
            FileNotFoundError: If either file is missing
            ValueError: If the YAML/JSON is malformed or fails validation
        """
        try:
            with open(schema_path, "r", encoding="utf-8") as f:
                schema = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {schema_path}: {e}") from e

        try:
            with open(policy_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {policy_path}: {e}") from e

        try:
            jsonschema.validate(instance=config, schema=schema)
        except jsonschema.ValidationError as e:
            logger.error("Permission policy failed schema validation", error=e.message)
            raise ValueError(f"Permission policy validation failed: {e.message}") from e

        capabilities = {
            Role(role): [Capability(c) for c in caps] for role, caps in config["roles"].items()
        }
        logger.info(
            f"Loaded permission policy for {len(capabilities)} roles",
            operation="load_permissions",
            context={"path": policy_path},
        )
        return cls(capabilities)

    def allowed_actions(self, role: Role) -> FrozenSet[Capability]:
        return self._capabilities.get(role, frozenset())

    def can(self, role: Role, capability: Capability) -> bool:
        return capability in self.allowed_actions(role)

    def visible_resources(self, role: Role) -> List[str]:
        """Admin resources shown to the role, in menu order."""
        allowed = self.allowed_actions(role)
        return [name for name, cap in RESOURCE_CAPABILITIES.items() if cap in allowed]


_DEFAULT_POLICY = PermissionPolicy()


def allowed_actions(role: Role) -> FrozenSet[Capability]:
    """Capabilities of a role under the default policy."""
    return _DEFAULT_POLICY.allowed_actions(role)
