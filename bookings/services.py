from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date as date_type
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.db.models import F, ProtectedError
from django.utils import timezone

from audit.services import log_action, recent_entries

from .access import (
    Decision,
    Principal,
    admin_role,
    authorize,
    authorize_user_deletion,
    is_admin,
    require,
)
from .models import Booking, BookingStatus, Room
from .uploads import Rejected, UploadPolicy, check_upload, delete_stored_file, store_upload, validate_upload


logger = logging.getLogger(__name__)


class BookingError(Exception):
    """Base error type for booking domain errors."""


class SelfActionForbidden(BookingError):
    """Raised when an administrator targets their own account."""


class UploadRejected(BookingError):
    """Raised when a submitted file violates its upload policy."""

    def __init__(self, rejected: Rejected):
        super().__init__(rejected.message)
        self.reason = rejected.reason


class ConcurrencyConflict(BookingError):
    """Raised when a record changed between read and write."""


class RoomUnavailableError(BookingError):
    """Raised when booking a room that is not open for bookings."""


class RoomInUseError(BookingError):
    """Raised when deleting a room that still has bookings."""


@dataclass(frozen=True)
class BookingInput:
    room_id: int
    check_in: date_type
    check_out: date_type
    service_type: str = ""


@dataclass(frozen=True)
class BookingEditInput:
    check_in: date_type
    check_out: date_type
    service_type: str = ""
    status: str | None = None
    expected_version: int | None = None


@dataclass(frozen=True)
class RoomInput:
    name: str
    description: str
    price_per_night: Decimal
    max_guests: int
    room_type: str = ""
    is_available: bool | None = None
    expected_version: int | None = None


BOOKING_EDIT_FIELDS = ["service_type", "check_in", "check_out", "status"]
ROOM_EDIT_FIELDS = ["name", "description", "price_per_night", "max_guests", "room_type", "is_available", "image_name"]


def _require_admin(principal: Principal | None, message: str) -> None:
    require(authorize(principal, required_role=admin_role()), message)


def _save_versioned(instance, expected_version: int, fields: list[str]) -> None:
    """
    Write the given fields only if the stored row still has expected_version.
    A lost race re-resolves to DoesNotExist when the row is gone, and to
    ConcurrencyConflict otherwise.
    """
    model = type(instance)
    values = {name: getattr(instance, name) for name in fields}
    values["version"] = F("version") + 1
    values["updated_at"] = timezone.now()

    updated = model.objects.filter(pk=instance.pk, version=expected_version).update(**values)
    if updated:
        instance.version = expected_version + 1
        instance.updated_at = values["updated_at"]
        return

    if not model.objects.filter(pk=instance.pk).exists():
        raise model.DoesNotExist(f"{model.__name__} {instance.pk} no longer exists.")
    raise ConcurrencyConflict(f"{model.__name__} {instance.pk} was modified by someone else. Reload and try again.")


# Bookings


def visible_bookings(*, principal: Principal | None):
    """
    Admins see every booking; everybody else only their own.
    """
    require(authorize(principal), "Authentication required.")
    qs = Booking.objects.select_related("room", "user").order_by("-check_in", "-created_at")
    if is_admin(principal):
        return qs
    return qs.filter(user_id=principal.id)


def all_bookings(*, principal: Principal | None):
    _require_admin(principal, "Only administrators can manage all bookings.")
    return Booking.objects.select_related("room", "user").order_by("-check_in", "-created_at")


def create_booking(*, principal: Principal | None, data: BookingInput, ip_address: str | None = None) -> Booking:
    """
    Create a Pending booking owned by the principal against an available room.
    """
    require(authorize(principal), "Authentication required.")
    actor_id = principal.id
    user = get_user_model().objects.get(pk=principal.id)

    with transaction.atomic():
        room = Room.objects.select_for_update().get(id=data.room_id)
        if not room.is_available:
            raise RoomUnavailableError("That room is not available for booking.")

        booking = Booking(
            user=user,
            room=room,
            service_type=data.service_type,
            check_in=data.check_in,
            check_out=data.check_out,
            status=BookingStatus.PENDING,
        )
        booking.full_clean()
        booking.save()

    log_action(
        actor_id,
        "CreateBooking",
        f"Created booking for room '{room.name}' from {data.check_in:%Y-%m-%d} to {data.check_out:%Y-%m-%d}",
        ip_address,
    )
    return booking


def _apply_booking_edit(booking: Booking, data: BookingEditInput) -> int:
    expected_version = data.expected_version or booking.version
    booking.service_type = data.service_type
    booking.check_in = data.check_in
    booking.check_out = data.check_out
    if data.status is not None:
        booking.status = data.status
    # user and room always keep the stored values.
    booking.full_clean()
    return expected_version


def edit_booking(
    *,
    principal: Principal | None,
    booking_id: int,
    data: BookingEditInput,
    ip_address: str | None = None,
) -> Booking:
    """
    Edit a booking as its owner (or an Admin).
    Owners may cancel a Pending booking but cannot otherwise change its status.
    """
    booking = Booking.objects.select_related("room").get(id=booking_id)
    require(
        authorize(principal, resource_owner_id=booking.user_id),
        "You do not have permission to edit this booking.",
    )
    actor_id = principal.id

    owner_cancels = booking.status == BookingStatus.PENDING and data.status == BookingStatus.CANCELLED
    if data.status is not None and data.status != booking.status and not is_admin(principal) and not owner_cancels:
        raise PermissionDenied("Only administrators can change a booking's status.")

    expected_version = _apply_booking_edit(booking, data)
    with transaction.atomic():
        _save_versioned(booking, expected_version, BOOKING_EDIT_FIELDS)

    log_action(actor_id, "EditBooking", f"Updated booking {booking_id}. Status: {booking.status}", ip_address)
    return booking


def delete_booking(*, principal: Principal | None, booking_id: int, ip_address: str | None = None) -> None:
    """
    Delete a booking after an ownership check (owner or Admin).
    """
    with transaction.atomic():
        booking = Booking.objects.select_for_update().get(id=booking_id)
        require(
            authorize(principal, resource_owner_id=booking.user_id),
            "You do not have permission to delete this booking.",
        )
        actor_id = principal.id
        booking.delete()

    log_action(actor_id, "DeleteBooking", f"Deleted booking {booking_id}", ip_address)


def admin_create_booking(
    *,
    principal: Principal | None,
    user_id,
    data: BookingInput,
    status: str = BookingStatus.PENDING,
    ip_address: str | None = None,
) -> Booking:
    _require_admin(principal, "Only administrators can create bookings for other users.")
    actor_id = principal.id
    user = get_user_model().objects.get(pk=user_id)

    with transaction.atomic():
        room = Room.objects.get(id=data.room_id)
        booking = Booking(
            user=user,
            room=room,
            service_type=data.service_type,
            check_in=data.check_in,
            check_out=data.check_out,
            status=status,
        )
        booking.full_clean()
        booking.save()

    log_action(
        actor_id,
        "AdminCreateBooking",
        f"Admin created booking for user {user.pk}: {data.service_type}",
        ip_address,
    )
    return booking


def admin_edit_booking(
    *,
    principal: Principal | None,
    booking_id: int,
    data: BookingEditInput,
    ip_address: str | None = None,
) -> Booking:
    _require_admin(principal, "Only administrators can edit bookings here.")
    actor_id = principal.id

    booking = Booking.objects.select_related("room", "user").get(id=booking_id)
    expected_version = _apply_booking_edit(booking, data)
    with transaction.atomic():
        _save_versioned(booking, expected_version, BOOKING_EDIT_FIELDS)

    log_action(actor_id, "AdminEditBooking", f"Admin updated booking {booking_id}. Status: {booking.status}", ip_address)
    return booking


def admin_delete_booking(*, principal: Principal | None, booking_id: int, ip_address: str | None = None) -> None:
    _require_admin(principal, "Only administrators can delete bookings here.")
    actor_id = principal.id

    with transaction.atomic():
        booking = Booking.objects.select_for_update().get(id=booking_id)
        booking.delete()

    log_action(actor_id, "AdminDeleteBooking", f"Admin deleted booking {booking_id}", ip_address)


def update_booking_status(
    *,
    principal: Principal | None,
    booking_id: int,
    status: str,
    expected_version: int | None = None,
    ip_address: str | None = None,
) -> Booking:
    _require_admin(principal, "Only administrators can change a booking's status.")
    actor_id = principal.id

    if status not in BookingStatus.values:
        raise ValidationError({"status": "Invalid status."})

    booking = Booking.objects.get(id=booking_id)
    expected_version = expected_version or booking.version
    booking.status = status
    with transaction.atomic():
        _save_versioned(booking, expected_version, ["status"])

    log_action(actor_id, "AdminUpdateStatus", f"Admin changed booking {booking_id} status to {status}", ip_address)
    return booking


# Rooms


def available_rooms():
    return Room.objects.filter(is_available=True).order_by("name")


def catalog(*, principal: Principal | None):
    _require_admin(principal, "Only administrators can manage the room catalog.")
    return Room.objects.order_by("name")


def _apply_room_input(room: Room, data: RoomInput) -> None:
    room.name = data.name
    room.description = data.description
    room.price_per_night = data.price_per_night
    room.max_guests = data.max_guests
    room.room_type = data.room_type
    if data.is_available is not None:
        room.is_available = data.is_available


def _check_image(image, policy: UploadPolicy) -> None:
    if image is None:
        return
    rejected = check_upload(image, policy)
    if rejected is not None:
        logger.warning("Room image rejected under policy %s: %s", policy.name, rejected.reason.value)
        raise UploadRejected(rejected)


def create_room(
    *,
    principal: Principal | None,
    data: RoomInput,
    policy: UploadPolicy,
    image=None,
    ip_address: str | None = None,
) -> Room:
    """
    Add a room to the catalog, optionally with an image.
    Every check runs before the image is written.
    """
    _require_admin(principal, "Only administrators can manage the room catalog.")
    actor_id = principal.id

    _check_image(image, policy)
    room = Room()
    _apply_room_input(room, data)
    room.full_clean(exclude=["image_name"])

    stored_name = store_upload(image, policy).stored_name if image is not None else ""
    room.image_name = stored_name
    try:
        with transaction.atomic():
            room.save()
    except Exception:
        if stored_name:
            delete_stored_file(policy.storage_dir, stored_name)
        raise

    log_action(actor_id, "AdminCreateRoom", f"Admin created room: {room.name}", ip_address)
    return room


def edit_room(
    *,
    principal: Principal | None,
    room_id: int,
    data: RoomInput,
    policy: UploadPolicy,
    image=None,
    ip_address: str | None = None,
) -> Room:
    """
    Update a room. A replacement image is stored first; the previous image is
    removed only once the room row pointing at the new one has been committed.
    """
    _require_admin(principal, "Only administrators can manage the room catalog.")
    actor_id = principal.id

    room = Room.objects.get(id=room_id)
    _check_image(image, policy)

    expected_version = data.expected_version or room.version
    old_image = room.image_name
    _apply_room_input(room, data)
    room.full_clean(exclude=["image_name"])

    new_image = store_upload(image, policy).stored_name if image is not None else None
    if new_image:
        room.image_name = new_image

    try:
        with transaction.atomic():
            _save_versioned(room, expected_version, ROOM_EDIT_FIELDS)
            if new_image and old_image:
                transaction.on_commit(lambda: delete_stored_file(policy.storage_dir, old_image))
    except Exception:
        if new_image:
            delete_stored_file(policy.storage_dir, new_image)
        raise

    log_action(actor_id, "AdminEditRoom", f"Admin updated room {room_id}: {room.name}", ip_address)
    return room


def delete_room(
    *,
    principal: Principal | None,
    room_id: int,
    policy: UploadPolicy,
    ip_address: str | None = None,
) -> None:
    _require_admin(principal, "Only administrators can manage the room catalog.")
    actor_id = principal.id

    with transaction.atomic():
        room = Room.objects.select_for_update().get(id=room_id)
        name, image = room.name, room.image_name
        try:
            room.delete()
        except ProtectedError as exc:
            raise RoomInUseError("This room still has bookings and cannot be deleted.") from exc
        if image:
            transaction.on_commit(lambda: delete_stored_file(policy.storage_dir, image))

    log_action(actor_id, "AdminDeleteRoom", f"Admin deleted room {room_id}: {name}", ip_address)


# Users


def list_users(*, principal: Principal | None) -> list[dict]:
    _require_admin(principal, "Only administrators can manage users.")
    role = admin_role()

    users = []
    for user in get_user_model().objects.prefetch_related("groups").order_by("pk"):
        roles = sorted({g.name for g in user.groups.all()} | ({role} if user.is_superuser else set()))
        users.append(
            {
                "id": user.pk,
                "username": user.get_username(),
                "email": user.email,
                "roles": ", ".join(roles),
                "is_admin": role in roles,
            }
        )
    return users


def delete_user(*, principal: Principal | None, user_id, ip_address: str | None = None) -> None:
    """
    Delete a user and their bookings. Administrators cannot delete themselves.
    """
    decision = authorize_user_deletion(principal, user_id)
    require(decision, "Only administrators can manage users.")
    actor_id = principal.id

    user = get_user_model().objects.get(pk=user_id)
    if decision is Decision.SELF:
        raise SelfActionForbidden("You cannot delete your own account.")

    label = user.email or user.get_username()
    with transaction.atomic():
        Booking.objects.filter(user=user).delete()
        user.delete()

    log_action(actor_id, "AdminDeleteUser", f"Admin deleted user: {label}", ip_address)


def dashboard_stats(*, principal: Principal | None) -> dict[str, int]:
    _require_admin(principal, "Only administrators can view the dashboard.")
    return {
        "total_bookings": Booking.objects.count(),
        "pending_bookings": Booking.objects.filter(status=BookingStatus.PENDING).count(),
        "total_users": get_user_model().objects.count(),
        "total_rooms": Room.objects.count(),
    }


def audit_trail(*, principal: Principal | None, limit: int | None = None):
    _require_admin(principal, "Only administrators can view the audit trail.")
    return recent_entries(limit)


# Generic uploads


def upload_attachment(
    *,
    principal: Principal | None,
    file,
    policy: UploadPolicy,
    ip_address: str | None = None,
) -> str:
    require(authorize(principal), "Authentication required.")
    actor_id = principal.id

    result = validate_upload(file, policy)
    if isinstance(result, Rejected):
        raise UploadRejected(result)

    log_action(actor_id, "UploadFile", f"Uploaded file {result.stored_name}", ip_address)
    return result.stored_name
