"""
Read-only audit log API for the admin domain.
"""
import logging
from rest_framework.views import APIView
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.audit.models import AuditLogEntry
from apps.audit.serializers import AuditLogEntrySerializer
from apps.organizations.resolver import resolution_for_request
from apps.rbac.permissions import IsOrgAdmin

logger = logging.getLogger(__name__)


class StandardResultsSetPagination(PageNumberPagination):
    """Standard pagination for list endpoints."""
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 100


class AuditLogListView(APIView):
    """
    GET /audit-logs/  on the admin domain.

    Audit entries of the resolved organization, newest first.
    Filterable by ``action``. Admin or owner only.
    """

    permission_classes = [IsOrgAdmin]
    pagination_class = StandardResultsSetPagination

    @extend_schema(
        summary="List audit log entries",
        parameters=[
            OpenApiParameter('action', OpenApiTypes.STR, description='Filter by action name'),
            OpenApiParameter('page', OpenApiTypes.INT),
            OpenApiParameter('page_size', OpenApiTypes.INT),
        ],
        responses={200: AuditLogEntrySerializer(many=True)},
        tags=['Admin - Audit'],
    )
    def get(self, request, org_slug=None):
        context = resolution_for_request(request).context

        entries = AuditLogEntry.objects.for_org(context.org_id).order_by('-created_at')

        action = request.query_params.get('action')
        if action:
            entries = entries.by_action(action)

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(entries, request, view=self)
        serializer = AuditLogEntrySerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)
