from datetime import date
from decimal import Decimal
from types import MappingProxyType

import pytest
from django.apps import apps
from django.contrib.auth.models import Group, User
from django.core.files.uploadedfile import SimpleUploadedFile

from bookings.access import principal_from_user
from bookings.models import Booking, BookingStatus, Room
from bookings.uploads import UploadPolicy


MB = 1024 * 1024


def make_file(name="photo.png", size=1024, content_type="image/png"):
    return SimpleUploadedFile(name, b"\x89PNG" + b"0" * max(size - 4, 0), content_type=content_type)


@pytest.fixture
def room_policy(tmp_path):
    return UploadPolicy(
        name="room_images",
        max_size_bytes=5 * MB,
        allowed_extensions=frozenset({"jpg", "jpeg", "png", "gif", "webp"}),
        allowed_content_types=frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"}),
        storage_dir=tmp_path / "rooms",
    )


@pytest.fixture
def attachment_policy(tmp_path):
    return UploadPolicy(
        name="attachments",
        max_size_bytes=2 * MB,
        allowed_extensions=frozenset({"jpg", "jpeg", "png", "pdf"}),
        allowed_content_types=frozenset({"image/jpeg", "image/png", "application/pdf"}),
        storage_dir=tmp_path / "attachments",
    )


@pytest.fixture
def app_policies(monkeypatch, room_policy, attachment_policy):
    """Point the app-wide policy table at the per-test storage directories."""
    config = apps.get_app_config("bookings")
    monkeypatch.setattr(
        config,
        "upload_policies",
        MappingProxyType({"room_images": room_policy, "attachments": attachment_policy}),
    )
    return config.upload_policies


@pytest.fixture
def admin_group(db):
    group, _ = Group.objects.get_or_create(name="Admin")
    return group


@pytest.fixture
def alice(db):
    return User.objects.create_user("alice", "alice@example.com", "pw-alice-123")


@pytest.fixture
def bob(db):
    return User.objects.create_user("bob", "bob@example.com", "pw-bob-123")


@pytest.fixture
def admin_user(db, admin_group):
    user = User.objects.create_user("admin", "admin@example.com", "pw-admin-123")
    user.groups.add(admin_group)
    return user


@pytest.fixture
def alice_principal(alice):
    return principal_from_user(alice)


@pytest.fixture
def bob_principal(bob):
    return principal_from_user(bob)


@pytest.fixture
def admin_principal(admin_user):
    return principal_from_user(admin_user)


@pytest.fixture
def room(db):
    return Room.objects.create(
        name="City Double",
        description="Double room with a view.",
        price_per_night=Decimal("119.00"),
        max_guests=2,
        room_type="Double",
    )


@pytest.fixture
def other_room(db):
    return Room.objects.create(
        name="Garden Single",
        description="Quiet single room.",
        price_per_night=Decimal("79.00"),
        max_guests=1,
        room_type="Single",
    )


@pytest.fixture
def alice_booking(alice, room):
    return Booking.objects.create(
        user=alice,
        room=room,
        service_type="Late check-in",
        check_in=date(2030, 5, 1),
        check_out=date(2030, 5, 4),
        status=BookingStatus.PENDING,
    )
