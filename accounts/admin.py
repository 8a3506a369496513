from django.contrib import admin
from django.contrib.auth import get_user_model
from django.contrib.auth.admin import UserAdmin

from audit.services import client_ip, log_action


User = get_user_model()

if admin.site.is_registered(User):
    admin.site.unregister(User)


@admin.register(User)
class AuditedUserAdmin(UserAdmin):
    """Stock user admin, minus self-deletion, with deletions on the audit trail."""

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.pk == request.user.pk:
            return False
        return super().has_delete_permission(request, obj)

    def delete_model(self, request, obj):
        label = obj.email or obj.get_username()
        super().delete_model(request, obj)
        log_action(request.user.pk, "AdminDeleteUser", f"Admin deleted user: {label}", client_ip(request))

    def get_actions(self, request):
        # Bulk deletes would bypass the audit trail.
        actions = super().get_actions(request)
        actions.pop("delete_selected", None)
        return actions
