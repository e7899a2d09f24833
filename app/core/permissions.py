"""Role-based access control and permissions."""

from dataclasses import dataclass
from enum import Enum

from app.core.exceptions import AuthorizationError


class ActorRole(str, Enum):
    """Roles supplied by the auth service."""

    CUSTOMER = "customer"
    STAFF = "staff"
    ADMIN = "admin"


class Permission(str, Enum):
    """System permissions."""

    # Customer self-service
    CREATE_BOOKING = "create_booking"
    REQUEST_CANCELLATION = "request_cancellation"
    REQUEST_EXTENSION = "request_extension"
    UPDATE_OWN_BOOKING = "update_own_booking"
    VIEW_OWN_BOOKINGS = "view_own_bookings"

    # Staff workflow resolution
    VIEW_ALL_BOOKINGS = "view_all_bookings"
    RESOLVE_CANCELLATION = "resolve_cancellation"
    RESOLVE_EXTENSION = "resolve_extension"
    CONFIRM_PAYMENT = "confirm_payment"
    RECORD_PAYMENT = "record_payment"
    PROGRESS_BOOKING = "progress_booking"

    # Administrative
    EDIT_BOOKING_FIELDS = "edit_booking_fields"
    DELETE_BOOKING = "delete_booking"
    RUN_RECONCILIATION = "run_reconciliation"


_STAFF_PERMISSIONS = {
    Permission.VIEW_ALL_BOOKINGS,
    Permission.RESOLVE_CANCELLATION,
    Permission.RESOLVE_EXTENSION,
    Permission.CONFIRM_PAYMENT,
    Permission.RECORD_PAYMENT,
    Permission.PROGRESS_BOOKING,
    Permission.RUN_RECONCILIATION,
}

ROLE_PERMISSIONS: dict[ActorRole, set[Permission]] = {
    ActorRole.CUSTOMER: {
        Permission.CREATE_BOOKING,
        Permission.REQUEST_CANCELLATION,
        Permission.REQUEST_EXTENSION,
        Permission.UPDATE_OWN_BOOKING,
        Permission.VIEW_OWN_BOOKINGS,
    },
    ActorRole.STAFF: _STAFF_PERMISSIONS,
    ActorRole.ADMIN: {
        # Admins have all permissions; ownership checks still gate self-service
        perm for perm in Permission
    },
}


@dataclass(frozen=True)
class Actor:
    """Verified identity of the caller."""

    id: int
    role: ActorRole

    @property
    def is_staff(self) -> bool:
        return self.role in (ActorRole.STAFF, ActorRole.ADMIN)


def has_permission(role: ActorRole, permission: Permission) -> bool:
    """Check if a role has a specific permission."""
    return permission in ROLE_PERMISSIONS.get(role, set())


def assert_permission(actor: Actor, permission: Permission) -> None:
    """Raise AuthorizationError unless the actor's role grants ``permission``."""
    if not has_permission(actor.role, permission):
        raise AuthorizationError(
            f"Role '{actor.role.value}' is not authorized to {permission.value.replace('_', ' ')}"
        )


def assert_owner(actor: Actor, customer_id: int, action: str) -> None:
    """Self-service actions are limited to the customer who owns the booking."""
    if actor.role != ActorRole.CUSTOMER or actor.id != customer_id:
        raise AuthorizationError(f"You can only {action} your own bookings")
