"""
Audit log serializers. Read-only.
"""
from rest_framework import serializers
from apps.audit.models import AuditLogEntry


class AuditLogEntrySerializer(serializers.ModelSerializer):
    """Serializer for AuditLogEntry."""

    class Meta:
        model = AuditLogEntry
        fields = [
            'id', 'org_id', 'user_id', 'action', 'payload',
            'request_id', 'created_at',
        ]
        read_only_fields = fields
