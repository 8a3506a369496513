from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied, ValidationError

from audit.models import AuditLog
from bookings import services
from bookings.models import Booking, Room
from bookings.services import (
    ConcurrencyConflict,
    RoomInput,
    RoomInUseError,
    UploadRejected,
    available_rooms,
    catalog,
    create_room,
    delete_room,
    edit_room,
    upload_attachment,
)
from bookings.uploads import RejectionReason

from .conftest import MB, make_file


pytestmark = pytest.mark.django_db


def room_input(**overrides):
    values = {
        "name": "Harbour Suite",
        "description": "Suite overlooking the harbour.",
        "price_per_night": Decimal("250.00"),
        "max_guests": 4,
        "room_type": "Suite",
    }
    values.update(overrides)
    return RoomInput(**values)


def stored(policy):
    return sorted(p.name for p in policy.storage_dir.iterdir()) if policy.storage_dir.exists() else []


class TestCreateRoom:
    def test_creates_room_with_image(self, admin_user, admin_principal, room_policy):
        room = create_room(
            principal=admin_principal,
            data=room_input(),
            image=make_file("harbour.png", size=1 * MB),
            policy=room_policy,
        )
        assert room.image_name.endswith(".png")
        assert room.image_name != "harbour.png"
        assert stored(room_policy) == [room.image_name]
        assert room.is_available is True

        entry = AuditLog.objects.get(action="AdminCreateRoom")
        assert entry.user_id == str(admin_user.pk)
        assert entry.details == "Admin created room: Harbour Suite"

    def test_oversized_image_rejected_without_side_effects(self, admin_principal, room_policy):
        with pytest.raises(UploadRejected) as excinfo:
            create_room(
                principal=admin_principal,
                data=room_input(),
                image=make_file("harbour.png", size=6 * MB),
                policy=room_policy,
            )
        assert excinfo.value.reason is RejectionReason.SIZE_EXCEEDED
        assert not Room.objects.exists()
        assert stored(room_policy) == []
        assert not AuditLog.objects.exists()

    def test_invalid_fields_rejected_before_image_is_written(self, admin_principal, room_policy):
        with pytest.raises(ValidationError):
            create_room(
                principal=admin_principal,
                data=room_input(room_type="Suite 42", max_guests=11),
                image=make_file("harbour.png"),
                policy=room_policy,
            )
        assert stored(room_policy) == []

    def test_non_admin_is_denied(self, alice_principal, room_policy):
        with pytest.raises(PermissionDenied):
            create_room(principal=alice_principal, data=room_input(), image=make_file(), policy=room_policy)
        assert stored(room_policy) == []

    def test_failed_save_removes_new_image(self, monkeypatch, admin_principal, room_policy):
        def broken_save(self, *args, **kwargs):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(Room, "save", broken_save)
        with pytest.raises(RuntimeError):
            create_room(principal=admin_principal, data=room_input(), image=make_file(), policy=room_policy)
        assert stored(room_policy) == []


class TestEditRoom:
    def test_replacing_image_deletes_old_one_after_commit(
        self, admin_principal, room_policy, django_capture_on_commit_callbacks
    ):
        room = create_room(principal=admin_principal, data=room_input(), image=make_file("a.png"), policy=room_policy)
        old_image = room.image_name

        with django_capture_on_commit_callbacks(execute=True):
            room = edit_room(
                principal=admin_principal,
                room_id=room.id,
                data=room_input(name="Harbour Suite Deluxe"),
                image=make_file("b.jpg", content_type="image/jpeg"),
                policy=room_policy,
            )

        room.refresh_from_db()
        assert room.name == "Harbour Suite Deluxe"
        assert room.image_name.endswith(".jpg")
        assert stored(room_policy) == [room.image_name]
        assert old_image not in stored(room_policy)
        assert AuditLog.objects.filter(action="AdminEditRoom").count() == 1

    def test_conflicting_edit_keeps_old_image(self, admin_principal, room_policy):
        room = create_room(principal=admin_principal, data=room_input(), image=make_file("a.png"), policy=room_policy)
        old_image = room.image_name
        Room.objects.filter(id=room.id).update(version=9)

        with pytest.raises(ConcurrencyConflict):
            edit_room(
                principal=admin_principal,
                room_id=room.id,
                data=room_input(expected_version=1),
                image=make_file("b.png"),
                policy=room_policy,
            )

        room.refresh_from_db()
        assert room.image_name == old_image
        assert stored(room_policy) == [old_image]

    def test_rejected_image_keeps_everything(self, admin_principal, room_policy):
        room = create_room(principal=admin_principal, data=room_input(), image=make_file("a.png"), policy=room_policy)
        with pytest.raises(UploadRejected):
            edit_room(
                principal=admin_principal,
                room_id=room.id,
                data=room_input(name="Renamed"),
                image=make_file("b.svg", content_type="image/svg+xml"),
                policy=room_policy,
            )
        room.refresh_from_db()
        assert room.name == "Harbour Suite"
        assert stored(room_policy) == [room.image_name]

    def test_edit_without_image_keeps_current_one(self, admin_principal, room_policy):
        room = create_room(principal=admin_principal, data=room_input(), image=make_file("a.png"), policy=room_policy)
        edited = edit_room(
            principal=admin_principal,
            room_id=room.id,
            data=room_input(is_available=False),
            policy=room_policy,
        )
        edited.refresh_from_db()
        assert edited.image_name == room.image_name
        assert edited.is_available is False

    def test_room_deleted_before_write_drops_new_image(self, monkeypatch, admin_principal, room_policy):
        room = create_room(principal=admin_principal, data=room_input(), policy=room_policy)
        apply_input = services._apply_room_input

        def apply_then_delete(target, data):
            apply_input(target, data)
            Room.objects.filter(id=target.id).delete()

        monkeypatch.setattr(services, "_apply_room_input", apply_then_delete)
        with pytest.raises(Room.DoesNotExist):
            edit_room(
                principal=admin_principal,
                room_id=room.id,
                data=room_input(name="Harbour Suite Deluxe"),
                image=make_file("b.png"),
                policy=room_policy,
            )
        assert stored(room_policy) == []
        assert not AuditLog.objects.filter(action="AdminEditRoom").exists()

    def test_missing_room(self, admin_principal, room_policy):
        with pytest.raises(Room.DoesNotExist):
            edit_room(principal=admin_principal, room_id=9999, data=room_input(), policy=room_policy)


class TestDeleteRoom:
    def test_deletes_room_and_image(self, admin_principal, room_policy, django_capture_on_commit_callbacks):
        room = create_room(principal=admin_principal, data=room_input(), image=make_file("a.png"), policy=room_policy)
        with django_capture_on_commit_callbacks(execute=True):
            delete_room(principal=admin_principal, room_id=room.id, policy=room_policy)

        assert not Room.objects.filter(id=room.id).exists()
        assert stored(room_policy) == []
        assert AuditLog.objects.get(action="AdminDeleteRoom").details == f"Admin deleted room {room.id}: Harbour Suite"

    def test_room_with_bookings_is_kept(self, admin_principal, room_policy, alice, room):
        Booking.objects.create(user=alice, room=room, check_in=date(2030, 1, 1), check_out=date(2030, 1, 2))
        with pytest.raises(RoomInUseError):
            delete_room(principal=admin_principal, room_id=room.id, policy=room_policy)
        assert Room.objects.filter(id=room.id).exists()


class TestListings:
    def test_available_rooms_hide_closed_rooms(self, room, other_room):
        other_room.is_available = False
        other_room.save()
        assert list(available_rooms()) == [room]

    def test_catalog_is_admin_only(self, admin_principal, alice_principal, room, other_room):
        assert list(catalog(principal=admin_principal)) == [room, other_room]
        with pytest.raises(PermissionDenied):
            catalog(principal=alice_principal)


class TestAttachments:
    def test_upload_attachment(self, alice, alice_principal, attachment_policy):
        name = upload_attachment(
            principal=alice_principal,
            file=make_file("scan.pdf", content_type="application/pdf"),
            policy=attachment_policy,
        )
        assert name.endswith(".pdf")
        assert stored(attachment_policy) == [name]
        assert AuditLog.objects.get(action="UploadFile").user_id == str(alice.pk)

    def test_rejected_attachment(self, alice_principal, attachment_policy):
        with pytest.raises(UploadRejected) as excinfo:
            upload_attachment(
                principal=alice_principal,
                file=make_file("photo.gif", content_type="image/gif"),
                policy=attachment_policy,
            )
        assert excinfo.value.reason is RejectionReason.EXTENSION_NOT_ALLOWED
        assert stored(attachment_policy) == []

    def test_anonymous_upload_denied(self, attachment_policy):
        with pytest.raises(PermissionDenied):
            services.upload_attachment(principal=None, file=make_file("a.png"), policy=attachment_policy)
