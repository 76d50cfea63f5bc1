"""Auth module - role and capability policy"""

from .permissions import (
    Capability,
    PermissionPolicy,
    Role,
    allowed_actions,
    parse_groups,
    role_from_groups,
)

__all__ = [
    "Capability",
    "PermissionPolicy",
    "Role",
    "allowed_actions",
    "parse_groups",
    "role_from_groups",
]
