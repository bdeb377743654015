"""
Order Service — access control policy

Ownership is the only axis: the owner of an order, or an admin, may act
on it. The same rule guards read, status update and cancel.
"""

from enum import Enum

from .auth import Claims
from .errors import Forbidden


class Action(str, Enum):
    READ = "read"
    UPDATE_STATUS = "update_status"
    CANCEL = "cancel"


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


def authorize(claims: Claims, resource_owner_id: str, action: Action) -> Decision:
    if claims.user_id == resource_owner_id or claims.is_admin:
        return Decision.ALLOW
    return Decision.DENY


def ensure_allowed(claims: Claims, resource_owner_id: str, action: Action) -> None:
    """Raise Forbidden unless `claims` may perform `action` on the resource."""
    if authorize(claims, resource_owner_id, action) is Decision.DENY:
        raise Forbidden()
