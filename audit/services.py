from __future__ import annotations

import logging

from django.conf import settings
from django.db import transaction

from .models import AuditLog


logger = logging.getLogger(__name__)


def _clip(value: str | None, limit: int) -> str | None:
    if value is None:
        return None
    value = str(value)
    return value if len(value) <= limit else value[:limit]


def client_ip(request) -> str | None:
    """
    Network origin of the request, as recorded on audit entries.
    X-Forwarded-For is only honoured when AUDIT_TRUST_FORWARDED_FOR is on.
    """
    if getattr(settings, "AUDIT_TRUST_FORWARDED_FOR", False):
        forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return _clip(first_hop, AuditLog.IP_ADDRESS_MAX_LENGTH)
    return _clip(request.META.get("REMOTE_ADDR") or None, AuditLog.IP_ADDRESS_MAX_LENGTH)


def log_action(user_id, action: str, details: str = "", ip_address: str | None = None) -> AuditLog | None:
    """
    Append an audit entry. Returns the entry, or None if it could not be written.
    Never raises (logs on failure), so a completed mutation is never undone by
    a broken audit trail.
    """
    try:
        # Savepoint keeps a failed insert from breaking an enclosing transaction.
        with transaction.atomic():
            return AuditLog.objects.create(
                user_id=str(user_id),
                action=_clip(action, AuditLog.ACTION_MAX_LENGTH),
                details=_clip(details or "", AuditLog.DETAILS_MAX_LENGTH),
                ip_address=_clip(ip_address, AuditLog.IP_ADDRESS_MAX_LENGTH),
            )
    except Exception:
        logger.exception("Failed to write audit entry %s for user %s (%s)", action, user_id, details)
        return None


def recent_entries(limit: int | None = None):
    qs = AuditLog.objects.order_by("-timestamp", "-id")
    if limit is not None:
        qs = qs[:limit]
    return qs
