"""
Identity middleware.

Sets ``request.user`` from the identity provider's access token, carried
either as a Bearer header or in the provider's session cookie.
"""
import logging
from django.contrib.auth.models import AnonymousUser
from django.utils.deprecation import MiddlewareMixin

from apps.rbac.services import IdentityService

logger = logging.getLogger(__name__)


class IdentityMiddleware(MiddlewareMixin):
    """
    Resolve the current subject. Never rejects a request on its own;
    anonymous callers are handled by the request gate and the views.
    """

    def process_request(self, request):
        token, source = IdentityService.token_from_request(request)
        user = IdentityService.get_user_from_token(token) if token else None

        if user is None:
            if token:
                logger.info(
                    "Identity token did not resolve to an active user",
                    extra={'request_id': getattr(request, 'request_id', None), 'token_source': source}
                )
            request.user = AnonymousUser()
            request.identity_source = None
            return None

        request.user = user
        request.identity_source = source
        return None
