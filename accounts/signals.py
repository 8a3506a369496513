from django.contrib.auth.signals import user_logged_in
from django.dispatch import receiver

from audit.services import client_ip, log_action


@receiver(user_logged_in, dispatch_uid="accounts.audit_login")
def audit_login(sender, request, user, **kwargs):
    log_action(user.pk, "Login", "User logged in", client_ip(request) if request is not None else None)
