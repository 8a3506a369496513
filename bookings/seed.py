from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from django.contrib.auth.models import Group
from django.db import transaction

from .access import admin_role
from .models import Room


@dataclass(frozen=True)
class RoomSeed:
    name: str
    price_per_night: Decimal
    max_guests: int
    room_type: str
    description: str = ""


DEFAULT_ROOMS: list[RoomSeed] = [
    RoomSeed(
        name="Garden Single",
        price_per_night=Decimal("79.00"),
        max_guests=1,
        room_type="Single",
        description="Quiet single room facing the garden.",
    ),
    RoomSeed(
        name="City Double",
        price_per_night=Decimal("119.00"),
        max_guests=2,
        room_type="Double",
        description="Double room with a view over the old town.",
    ),
    RoomSeed(
        name="Family Suite",
        price_per_night=Decimal("189.00"),
        max_guests=4,
        room_type="Suite",
        description="Two connected rooms with a kitchenette.",
    ),
    RoomSeed(
        name="Penthouse Deluxe",
        price_per_night=Decimal("349.00"),
        max_guests=6,
        room_type="Deluxe",
        description="Top floor suite with a private terrace.",
    ),
]


def ensure_admin_group() -> bool:
    """Create the group that grants the Admin role. Returns True if it was created."""
    _, created = Group.objects.get_or_create(name=admin_role())
    return created


def seed_default_rooms(*, update_existing: bool = False) -> dict[str, int]:
    """
    Idempotently seed the default room catalog.

    - If update_existing is False: creates missing rooms only (does not overwrite edits).
    - If update_existing is True: updates existing rooms to match defaults.
    """
    created = 0
    updated = 0
    skipped = 0

    with transaction.atomic():
        for seed in DEFAULT_ROOMS:
            defaults = {
                "price_per_night": seed.price_per_night,
                "max_guests": seed.max_guests,
                "room_type": seed.room_type,
                "description": seed.description,
                "is_available": True,
            }

            if update_existing:
                _, was_created = Room.objects.update_or_create(name=seed.name, defaults=defaults)
                if was_created:
                    created += 1
                else:
                    updated += 1
            else:
                _, was_created = Room.objects.get_or_create(name=seed.name, defaults=defaults)
                if was_created:
                    created += 1
                else:
                    skipped += 1

    return {"created": created, "updated": updated, "skipped": skipped}
