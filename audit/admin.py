from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "user_id", "action", "details", "ip_address")
    list_filter = ("action",)
    search_fields = ("user_id", "action", "details")
    ordering = ("-timestamp",)
    readonly_fields = ("user_id", "action", "details", "timestamp", "ip_address")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        # Viewing is still allowed through has_view_permission.
        return False

    def has_delete_permission(self, request, obj=None):
        return False
