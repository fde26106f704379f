"""
Append-only audit trail of privileged actions.

Rows can be inserted and read. UPDATE and DELETE are refused by database
triggers installed in this app's migrations; the model and queryset guards
below only make the refusal visible earlier.
"""
import uuid
import logging
from django.db import models
from django.utils import timezone

from apps.core.logging import SecurityLogger

logger = logging.getLogger(__name__)


class AuditLogImmutable(Exception):
    """Raised when application code tries to change or remove an entry."""


def _refuse(operation, **context):
    SecurityLogger.log_event('audit_tamper_attempt', level='critical', operation=operation, **context)
    raise AuditLogImmutable(f"Audit log entries cannot be {operation}d")


class AuditLogQuerySet(models.QuerySet):
    """QuerySet that cannot bulk-update or bulk-delete."""

    def update(self, **kwargs):
        _refuse('update', fields=sorted(kwargs))

    def delete(self):
        _refuse('delete')

    def for_org(self, org_id):
        return self.filter(org_id=org_id)

    def for_user(self, user_id):
        return self.filter(user_id=user_id)

    def by_action(self, action):
        return self.filter(action=action)


class AuditLogManager(models.Manager.from_queryset(AuditLogQuerySet)):
    """Manager for AuditLogEntry queries."""


class AuditLogEntry(models.Model):
    """
    One privileged action, recorded after its mutation succeeded.

    ``org_id`` and ``user_id`` are plain identifiers rather than foreign
    keys so history outlives deleted organizations and users. ``user_id``
    is null for operator actions taken outside a tenant session.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    org_id = models.UUIDField(db_index=True)
    user_id = models.UUIDField(null=True, blank=True, db_index=True)
    action = models.CharField(max_length=100, db_index=True)
    payload = models.JSONField(default=dict, blank=True)
    request_id = models.CharField(max_length=64, blank=True, default='')
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    objects = AuditLogManager()

    class Meta:
        db_table = 'audit_log_entries'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['org_id', 'created_at'], name='audit_org_created_idx'),
            models.Index(fields=['org_id', 'action', 'created_at'], name='audit_org_action_idx'),
        ]

    def __str__(self):
        return f"{self.org_id} - {self.user_id or 'operator'} - {self.action}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            _refuse('update', entry_id=str(self.id))
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        _refuse('delete', entry_id=str(self.id))
