"""
Tests for the append-only audit log.
"""
import threading
import uuid
from unittest.mock import patch

import pytest
from django.db import DatabaseError, connection, transaction

from apps.audit.models import AuditLogEntry, AuditLogImmutable
from apps.audit.services import AuditAction, AuditTrail


@pytest.fixture
def entry(db):
    return AuditTrail.append(uuid.uuid4(), uuid.uuid4(), AuditAction.ORG_FROZEN, {'reason': 'billing'})


@pytest.mark.django_db
class TestAuditTrail:

    def test_append(self, entry):
        stored = AuditLogEntry.objects.get(id=entry.id)

        assert stored.action == 'org_frozen'
        assert stored.payload == {'reason': 'billing'}
        assert stored.created_at is not None

    def test_operator_entry_has_no_user(self, db):
        org_id = uuid.uuid4()

        AuditTrail.append(org_id, None, AuditAction.ORGANIZATION_CREATED)

        assert AuditLogEntry.objects.for_org(org_id).get().user_id is None

    def test_request_id_is_stamped(self, db):
        thread = threading.current_thread()
        thread.request_id = 'req-123'
        try:
            entry = AuditTrail.append(uuid.uuid4(), None, AuditAction.ORG_UPDATED)
        finally:
            thread.request_id = None

        assert entry.request_id == 'req-123'

    def test_filters(self, db):
        org_id = uuid.uuid4()
        user_id = uuid.uuid4()
        AuditTrail.append(org_id, user_id, AuditAction.ORG_FROZEN)
        AuditTrail.append(org_id, user_id, AuditAction.ORG_UNFROZEN)
        AuditTrail.append(uuid.uuid4(), user_id, AuditAction.ORG_FROZEN)

        assert AuditLogEntry.objects.for_org(org_id).count() == 2
        assert AuditLogEntry.objects.for_user(user_id).count() == 3
        assert AuditLogEntry.objects.for_org(org_id).by_action('org_unfrozen').count() == 1


@pytest.mark.django_db
class TestImmutability:

    def test_save_existing_entry(self, entry):
        entry.action = 'something_else'

        with pytest.raises(AuditLogImmutable):
            entry.save()

    def test_delete_entry(self, entry):
        with pytest.raises(AuditLogImmutable):
            entry.delete()

    def test_refusal_is_reported_as_security_event(self, entry):
        with patch('apps.audit.models.SecurityLogger.log_event') as log_event:
            with pytest.raises(AuditLogImmutable):
                entry.delete()

        log_event.assert_called_once_with(
            'audit_tamper_attempt', level='critical', operation='delete', entry_id=str(entry.id)
        )

    def test_queryset_update_and_delete(self, entry):
        with pytest.raises(AuditLogImmutable):
            AuditLogEntry.objects.filter(id=entry.id).update(action='x')
        with pytest.raises(AuditLogImmutable):
            AuditLogEntry.objects.all().delete()

    def test_raw_update_is_refused_by_database(self, entry):
        with pytest.raises(DatabaseError):
            with transaction.atomic():
                with connection.cursor() as cursor:
                    cursor.execute(
                        "UPDATE audit_log_entries SET action = %s WHERE id = %s",
                        ['tampered', entry.id.hex],
                    )

        assert AuditLogEntry.objects.get(id=entry.id).action == 'org_frozen'

    def test_raw_delete_is_refused_by_database(self, entry):
        with pytest.raises(DatabaseError):
            with transaction.atomic():
                with connection.cursor() as cursor:
                    cursor.execute("DELETE FROM audit_log_entries")

        assert AuditLogEntry.objects.filter(id=entry.id).exists()
