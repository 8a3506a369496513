from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from django.conf import settings
from django.core.exceptions import PermissionDenied


logger = logging.getLogger(__name__)


def admin_role() -> str:
    return getattr(settings, "ADMIN_ROLE", "Admin")


@dataclass(frozen=True)
class Principal:
    """Authenticated caller for the duration of one request."""

    id: str
    roles: frozenset[str] = frozenset()


class Decision(enum.Enum):
    ALLOW = "allow"
    DENY = "deny"
    SELF = "self"  # actor targets their own account


def principal_from_user(user) -> Principal | None:
    """
    Build the request principal from a Django user.
    Anonymous or missing users have no principal.
    """
    if user is None or not getattr(user, "is_authenticated", False) or user.pk is None:
        return None

    roles = set(user.groups.values_list("name", flat=True))
    if user.is_superuser:
        roles.add(admin_role())
    return Principal(id=str(user.pk), roles=frozenset(roles))


def has_role(principal: Principal | None, role: str) -> bool:
    return principal is not None and role in principal.roles


def is_admin(principal: Principal | None) -> bool:
    return has_role(principal, admin_role())


def is_owner(principal: Principal | None, owner_id) -> bool:
    if principal is None or owner_id is None:
        return False
    return principal.id == str(owner_id)


def authorize(principal: Principal | None, resource_owner_id=None, required_role: str | None = None) -> Decision:
    """
    Decide whether the principal may act on a resource.

    - No principal: always DENY.
    - required_role given and missing: DENY.
    - resource_owner_id given: ALLOW for Admin or the owner, DENY otherwise.
    """
    if principal is None:
        return Decision.DENY
    if required_role is not None and not has_role(principal, required_role):
        return Decision.DENY
    if resource_owner_id is not None and not (is_admin(principal) or is_owner(principal, resource_owner_id)):
        return Decision.DENY
    return Decision.ALLOW


def authorize_user_deletion(principal: Principal | None, target_user_id) -> Decision:
    decision = authorize(principal, required_role=admin_role())
    if decision is not Decision.ALLOW:
        return decision
    if is_owner(principal, target_user_id):
        return Decision.SELF
    return Decision.ALLOW


def require(decision: Decision, message: str = "You do not have permission to perform this action.") -> None:
    if decision is Decision.DENY:
        logger.warning("Authorization denied: %s", message)
        raise PermissionDenied(message)
