"""
Core API views.
"""
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from django.db import connection, DatabaseError
from drf_spectacular.utils import extend_schema
import logging

logger = logging.getLogger(__name__)


class HealthCheckView(APIView):
    """
    Health check endpoint to verify the persistence service is reachable.

    GET /healthz

    Returns 200 if the database answers, 503 otherwise. Served outside the
    request gate so load balancers never need a session.
    """
    authentication_classes = []
    permission_classes = []

    @extend_schema(
        summary="Health check",
        description="Check connectivity to the persistence service",
        responses={
            200: {
                'type': 'object',
                'properties': {
                    'status': {'type': 'string'},
                    'database': {'type': 'string'},
                }
            },
            503: {
                'type': 'object',
                'properties': {
                    'status': {'type': 'string'},
                    'database': {'type': 'string'},
                }
            }
        }
    )
    def get(self, request):
        health_status = {
            'status': 'healthy',
            'database': 'unknown',
        }

        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
            health_status['database'] = 'healthy'
        except DatabaseError:
            health_status['database'] = 'unhealthy'
            health_status['status'] = 'unhealthy'
            logger.error("Database health check failed", exc_info=True)
            return Response(health_status, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response(health_status, status=status.HTTP_200_OK)


class PublicIndexView(APIView):
    """
    GET /  on the public (www) domain.

    Anyone may call it, signed in or not.
    """
    authentication_classes = []
    permission_classes = []

    @extend_schema(summary="Public landing", tags=['Public'])
    def get(self, request):
        domain = getattr(request, 'domain', None)
        return Response({
            'service': 'orgshell',
            'domain': domain.value if domain else 'public',
        })
