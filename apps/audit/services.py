"""
Audit trail writer.

Every privileged action calls ``AuditTrail.append`` exactly once, after its
mutation succeeded and before it reports success.
"""
import logging
import threading
from typing import Any, Dict, Optional

from apps.audit.models import AuditLogEntry

logger = logging.getLogger(__name__)


class AuditAction:
    """Action names recorded in the audit log."""
    OWNERSHIP_TRANSFERRED = 'ownership_transferred'
    ORG_FROZEN = 'org_frozen'
    ORG_UNFROZEN = 'org_unfrozen'
    ORG_ARCHIVED = 'org_archived'
    ORG_SWITCHED = 'org_switched'
    MEMBER_INVITED = 'member_invited'
    MEMBER_UPDATED = 'member_updated'
    MEMBER_REMOVED = 'member_removed'
    ORGANIZATION_CREATED = 'organization_created'
    ORG_UPDATED = 'org_updated'
    ORG_DELETED = 'org_deleted'


class AuditTrail:
    """Write side of the audit log. There is no update or delete."""

    @staticmethod
    def append(org_id, user_id, action: str,
               payload: Optional[Dict[str, Any]] = None) -> AuditLogEntry:
        """
        Insert one entry. Database errors propagate to the caller.

        ``user_id`` is None for operator actions.
        """
        request_id = getattr(threading.current_thread(), 'request_id', None) or ''
        entry = AuditLogEntry.objects.create(
            org_id=org_id,
            user_id=user_id,
            action=action,
            payload=payload or {},
            request_id=str(request_id)[:64],
        )
        logger.info(
            f"Audit entry recorded: {action}",
            extra={'org_id': str(org_id), 'action': action, 'audit_entry_id': str(entry.id)}
        )
        return entry
