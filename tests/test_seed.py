import pytest
from django.contrib.auth.models import Group
from django.core.management import call_command

from bookings.models import Room
from bookings.seed import DEFAULT_ROOMS, seed_default_rooms


pytestmark = pytest.mark.django_db


def test_seed_is_idempotent():
    assert seed_default_rooms() == {"created": len(DEFAULT_ROOMS), "updated": 0, "skipped": 0}
    assert seed_default_rooms() == {"created": 0, "updated": 0, "skipped": len(DEFAULT_ROOMS)}


def test_update_existing_restores_defaults():
    seed_default_rooms()
    Room.objects.filter(name="Family Suite").update(max_guests=2)
    result = seed_default_rooms(update_existing=True)
    assert result["updated"] == len(DEFAULT_ROOMS)
    assert Room.objects.get(name="Family Suite").max_guests == 4


def test_command_creates_admin_group(capsys):
    call_command("seed_catalog")
    assert Group.objects.filter(name="Admin").exists()
    assert Room.objects.count() == len(DEFAULT_ROOMS)
    assert "Seed completed" in capsys.readouterr().out
