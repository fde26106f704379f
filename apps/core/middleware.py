"""
Core middleware for request processing.
"""
import uuid
import logging
import threading
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)


class RequestIDMiddleware(MiddlewareMixin):
    """
    Inject a unique request_id into each request for tracing.
    The request_id is added to the request object and to log records.
    """

    def process_request(self, request):
        """Generate and attach request_id to the request."""
        request_id = request.META.get('HTTP_X_REQUEST_ID') or str(uuid.uuid4())
        request.request_id = request_id

        thread = threading.current_thread()
        thread.request_id = request_id
        thread.org_id = None

    def process_response(self, request, response):
        """Add request_id to response headers and clear per-thread log context."""
        if hasattr(request, 'request_id'):
            response['X-Request-ID'] = request.request_id

        thread = threading.current_thread()
        thread.request_id = None
        thread.org_id = None
        return response


def bind_org_to_log_context(org_id):
    """Stamp subsequent log records of this request with the resolved org."""
    threading.current_thread().org_id = str(org_id) if org_id else None


class LoggingFilter(logging.Filter):
    """
    Add request_id and org_id to log records from the current request thread.
    """

    def filter(self, record):
        thread = threading.current_thread()

        if not getattr(record, 'request_id', None):
            record.request_id = getattr(thread, 'request_id', None)

        if not getattr(record, 'org_id', None):
            record.org_id = getattr(thread, 'org_id', None)

        return True
