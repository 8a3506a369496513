from types import MappingProxyType

from django.apps import AppConfig, apps
from django.conf import settings


class BookingsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "bookings"
    upload_policies = MappingProxyType({})

    def ready(self):
        from .uploads import build_policies

        self.upload_policies = build_policies(settings.UPLOAD_POLICIES, settings.UPLOAD_ROOT)


def upload_policy(name: str):
    return apps.get_app_config("bookings").upload_policies[name]
