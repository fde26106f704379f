"""
Error taxonomy and DRF exception handling.

Every failure a privileged action or the request gate can produce maps onto
one of the classes below. Views and the action executor never invent other
failure shapes.
"""
import logging
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
from django_ratelimit.exceptions import Ratelimited
from django.http import JsonResponse

logger = logging.getLogger(__name__)


class OrgShellException(Exception):
    """Base exception for orgshell-specific errors."""

    code = 'ERROR'
    status_code = 400
    default_message = 'Request failed'

    def __init__(self, message=None, details=None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(OrgShellException):
    """Raised when input has the wrong shape. Never mutates state."""
    code = 'VALIDATION_ERROR'
    status_code = 400
    default_message = 'Invalid input'

    def __init__(self, message=None, details=None, field_errors=None):
        super().__init__(message, details)
        self.field_errors = field_errors or {}


class AuthenticationRequired(OrgShellException):
    """Raised when no subject can be resolved from the request."""
    code = 'AUTHENTICATION_REQUIRED'
    status_code = 401
    default_message = 'Sign in to continue'


class AuthorizationDenied(OrgShellException):
    """Raised when the subject is known but its role is insufficient."""
    code = 'FORBIDDEN'
    status_code = 403
    default_message = 'You do not have permission to perform this action'


class NotFound(OrgShellException):
    """
    Raised when an organization, slug or user does not exist, or when the
    caller is not a member. The two cases are deliberately indistinguishable.
    """
    code = 'NOT_FOUND'
    status_code = 404
    default_message = 'Not found'


class StateConflict(OrgShellException):
    """Raised when an action would break an invariant or lost a race."""
    code = 'STATE_CONFLICT'
    status_code = 409
    default_message = 'The request conflicts with the current state'


class StorageFailure(OrgShellException):
    """Opaque downstream failure. The message never carries internals."""
    code = 'STORAGE_FAILURE'
    status_code = 503
    default_message = 'Something went wrong. Please try again.'


def ratelimit_view(request, exception):
    """
    Custom view for django-ratelimit to return 429 instead of 403.
    """
    from apps.core.logging import SecurityLogger

    retry_after = 60

    SecurityLogger.log_event(
        'rate_limit_exceeded',
        endpoint=request.path,
        ip_address=request.META.get('REMOTE_ADDR', 'unknown'),
    )

    response = JsonResponse(
        {
            'error': {
                'code': 'RATE_LIMIT_EXCEEDED',
                'message': 'Rate limit exceeded. Please try again later.',
            },
            'retry_after': retry_after,
        },
        status=429
    )
    response['Retry-After'] = str(retry_after)
    return response


def custom_exception_handler(exc, context):
    """
    Custom exception handler that logs errors and returns a consistent format.
    """
    request = context.get('request')
    request_id = getattr(request, 'request_id', None) if request else None

    if isinstance(exc, Ratelimited):
        response = Response(
            {
                'error': {
                    'code': 'RATE_LIMIT_EXCEEDED',
                    'message': 'Rate limit exceeded. Please try again later.',
                },
                'request_id': request_id,
            },
            status=status.HTTP_429_TOO_MANY_REQUESTS
        )
        response['Retry-After'] = '60'
        return response

    if isinstance(exc, OrgShellException):
        logger.info(
            f"{exc.__class__.__name__}: {exc.message}",
            extra={
                'request_id': request_id,
                'path': request.path if request else None,
            }
        )
        body = {
            'error': {
                'code': exc.code,
                'message': exc.message,
            },
            'request_id': request_id,
        }
        if isinstance(exc, ValidationError) and exc.field_errors:
            body['error']['fields'] = exc.field_errors
        return Response(body, status=exc.status_code)

    # Call DRF's default exception handler first
    response = exception_handler(exc, context)

    if response is None:
        logger.error(
            f"API Exception: {exc.__class__.__name__}",
            extra={
                'request_id': request_id,
                'path': request.path if request else None,
                'method': request.method if request else None,
            },
            exc_info=True
        )
        return Response(
            {
                'error': {
                    'code': 'INTERNAL_ERROR',
                    'message': 'An unexpected error occurred',
                },
                'request_id': request_id,
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if request_id and isinstance(response.data, dict):
        response.data['request_id'] = request_id

    return response
