"""
Custom DRF authentication classes.
"""
from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication, CSRFCheck


def _dummy_get_response(request):
    return None


class MiddlewareAuthentication(BaseAuthentication):
    """
    DRF authentication class that uses the user set by IdentityMiddleware.

    The middleware resolves the subject from the identity provider's token
    and sets request.user; this class hands that user to DRF. When the
    token came from a cookie, unsafe methods also need a valid CSRF token.
    """

    def authenticate(self, request):
        django_request = request._request

        user = getattr(django_request, 'user', None)
        if user is None or not user.is_authenticated:
            return None

        if getattr(django_request, 'identity_source', None) == 'cookie':
            self.enforce_csrf(request)

        return (user, None)

    def enforce_csrf(self, request):
        """Same check DRF's SessionAuthentication applies to cookie sessions."""
        check = CSRFCheck(_dummy_get_response)
        check.process_request(request)
        reason = check.process_view(request, None, (), {})
        if reason:
            raise exceptions.PermissionDenied(f'CSRF Failed: {reason}')

    def authenticate_header(self, request):
        # Makes DRF answer 401 instead of 403 for anonymous callers.
        return 'Bearer'
