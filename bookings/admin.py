from django.contrib import admin
from django.db import transaction
from django.utils.html import format_html

from audit.services import client_ip, log_action

from .apps import upload_policy
from .models import Booking, BookingStatus, Room
from .uploads import delete_stored_file


admin.site.site_header = "Secure Booking Admin"
admin.site.site_title = "Secure Booking Admin"
admin.site.index_title = "Bookings, rooms and audit trail"


STATUS_COLORS = {
    BookingStatus.PENDING: "#c9b26b",
    BookingStatus.CONFIRMED: "#5f9e6e",
    BookingStatus.CANCELLED: "#7e8571",
}


class AuditedModelAdmin(admin.ModelAdmin):
    """Records admin-site saves and deletes like the API handlers do."""

    audit_label = ""

    def save_model(self, request, obj, form, change):
        # Model-level validation runs before anything is written.
        obj.full_clean()
        if change:
            obj.version += 1
        super().save_model(request, obj, form, change)
        verb = "updated" if change else "created"
        log_action(
            request.user.pk,
            f"Admin{'Edit' if change else 'Create'}{self.audit_label}",
            f"Admin {verb} {self.audit_label.lower()} {obj.pk} via admin site",
            client_ip(request),
        )

    def delete_model(self, request, obj):
        pk = obj.pk
        super().delete_model(request, obj)
        log_action(
            request.user.pk,
            f"AdminDelete{self.audit_label}",
            f"Admin deleted {self.audit_label.lower()} {pk} via admin site",
            client_ip(request),
        )

    def get_actions(self, request):
        # Bulk deletes would bypass the audit trail.
        actions = super().get_actions(request)
        actions.pop("delete_selected", None)
        return actions


@admin.register(Room)
class RoomAdmin(AuditedModelAdmin):
    audit_label = "Room"
    list_display = ("name", "room_type", "price_per_night", "max_guests", "is_available", "updated_at")
    list_filter = ("is_available", "room_type")
    search_fields = ("name",)
    ordering = ("name",)
    # Image files are managed through the catalog API so their storage stays in sync.
    readonly_fields = ("image_name", "version", "created_at", "updated_at")

    def delete_model(self, request, obj):
        image = obj.image_name
        super().delete_model(request, obj)
        if image:
            storage_dir = upload_policy("room_images").storage_dir
            transaction.on_commit(lambda: delete_stored_file(storage_dir, image))


@admin.register(Booking)
class BookingAdmin(AuditedModelAdmin):
    audit_label = "Booking"
    list_display = ("id", "user_email", "room", "check_in", "check_out", "status_badge", "created_at")
    list_filter = ("status", "room", "check_in")
    search_fields = ("user__email", "user__username")
    ordering = ("-check_in",)
    list_select_related = ("user", "room")
    readonly_fields = ("version", "created_at", "updated_at")

    def get_readonly_fields(self, request, obj=None):
        readonly = list(super().get_readonly_fields(request, obj))
        if obj is not None:
            # Ownership and room are fixed once a booking exists.
            readonly.extend(["user", "room"])
        return readonly

    @admin.display(description="User", ordering="user__email")
    def user_email(self, obj: Booking) -> str:
        return obj.user.email or obj.user.get_username()

    @admin.display(description="Status", ordering="status")
    def status_badge(self, obj: Booking) -> str:
        return format_html(
            '<span style="padding:3px 8px;border-radius:999px;color:{};font-weight:600;font-size:11px;">{}</span>',
            STATUS_COLORS.get(obj.status, "#7e8571"),
            obj.get_status_display(),
        )
