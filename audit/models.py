from django.db import models
from django.utils import timezone


class AuditLogImmutableError(Exception):
    """Raised when code tries to change or remove a recorded audit entry."""


class AuditLog(models.Model):
    ACTION_MAX_LENGTH = 50
    DETAILS_MAX_LENGTH = 1000
    IP_ADDRESS_MAX_LENGTH = 45

    user_id = models.CharField(max_length=450)
    action = models.CharField(max_length=ACTION_MAX_LENGTH)
    details = models.CharField(max_length=DETAILS_MAX_LENGTH, blank=True)
    timestamp = models.DateTimeField(default=timezone.now, editable=False)
    ip_address = models.CharField(max_length=IP_ADDRESS_MAX_LENGTH, blank=True, null=True)

    class Meta:
        ordering = ["-timestamp", "-id"]
        indexes = [
            models.Index(fields=["user_id", "timestamp"], name="idx_audit_user_ts"),
            models.Index(fields=["action"], name="idx_audit_action"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.timestamp:%Y-%m-%d %H:%M:%S} · {self.action} · {self.user_id}"

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise AuditLogImmutableError("Audit entries cannot be modified.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AuditLogImmutableError("Audit entries cannot be deleted.")
