import logging

from django.contrib.auth.views import LogoutView
from django.urls import reverse_lazy

from audit.services import client_ip, log_action


logger = logging.getLogger(__name__)


class AppLogoutView(LogoutView):
    """
    Logout that leaves an audit entry. The actor is captured before the
    session is flushed, since request.user is anonymous afterwards.
    """

    next_page = reverse_lazy("account_login")

    def post(self, request, *args, **kwargs):
        actor_id = request.user.pk if request.user.is_authenticated else None
        ip_address = client_ip(request)

        response = super().post(request, *args, **kwargs)

        if actor_id is not None:
            log_action(actor_id, "Logout", "User logged out", ip_address)
            logger.info("User %s logged out.", actor_id)
        return response
