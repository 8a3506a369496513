from __future__ import annotations

from django.core.management.base import BaseCommand

from bookings.seed import ensure_admin_group, seed_default_rooms


class Command(BaseCommand):
    help = "Create the Admin group and seed the default room catalog (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--update-existing",
            action="store_true",
            help="Update existing rooms to match the default seed values.",
        )

    def handle(self, *args, **options):
        group_created = ensure_admin_group()
        result = seed_default_rooms(update_existing=options["update_existing"])
        self.stdout.write(
            self.style.SUCCESS(
                f"Seed completed: admin_group={'created' if group_created else 'present'} "
                f"created={result['created']} updated={result['updated']} skipped={result['skipped']}"
            )
        )
