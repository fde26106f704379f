"""
Identity and membership services.

Implements:
- IdentityService: validation of the identity provider's access token
- MembershipService: role lookups used by the gate, resolver and executor
"""
import logging
import uuid
from typing import Optional, Dict, Any

from django.conf import settings
import jwt

from apps.rbac.models import User
from apps.rbac.roles import Role

logger = logging.getLogger(__name__)


class IdentityService:
    """
    Reads the current subject from the identity provider's access token.

    The provider issues and signs tokens; this service only verifies them
    and never issues credentials of its own.
    """

    @classmethod
    def validate_token(cls, token: str) -> Optional[Dict[str, Any]]:
        """
        Validate an access token and return its payload.

        Returns None if the token is expired, malformed or badly signed.
        """
        if not token:
            return None

        options = {'require': ['exp', 'sub']}
        audience = getattr(settings, 'IDP_JWT_AUDIENCE', None)
        try:
            return jwt.decode(
                token,
                settings.IDP_JWT_SECRET,
                algorithms=[getattr(settings, 'IDP_JWT_ALGORITHM', 'HS256')],
                audience=audience or None,
                options=options if audience else {**options, 'verify_aud': False},
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Identity token expired")
            return None
        except jwt.InvalidTokenError:
            logger.debug("Identity token rejected")
            return None

    @classmethod
    def get_user_from_token(cls, token: str) -> Optional[User]:
        """
        Resolve the mirror User for a token's subject.

        Unknown or inactive subjects resolve to None.
        """
        payload = cls.validate_token(token)
        if not payload:
            return None

        try:
            subject = uuid.UUID(str(payload.get('sub')))
        except (TypeError, ValueError):
            return None

        return User.objects.filter(id=subject, is_active=True).first()

    @classmethod
    def token_from_request(cls, request):
        """
        Bearer header first, then the provider's session cookie.

        Returns a ``(token, source)`` tuple; source is ``'header'``,
        ``'cookie'`` or None.
        """
        auth_header = request.META.get('HTTP_AUTHORIZATION', '')
        if auth_header.startswith('Bearer '):
            token = auth_header[7:].strip()
            return (token, 'header') if token else (None, None)

        cookie_name = getattr(settings, 'IDP_ACCESS_TOKEN_COOKIE', 'sb-access-token')
        token = request.COOKIES.get(cookie_name)
        return (token, 'cookie') if token else (None, None)


class MembershipService:
    """
    Role lookups against the membership store.
    """

    @classmethod
    def is_ops_user(cls, user) -> bool:
        """True when ``user`` is a member of the operator organization."""
        from apps.organizations.models import Membership

        if user is None or not user.is_authenticated:
            return False

        return Membership.objects.filter(
            user=user,
            organization_id=settings.OPS_ORGANIZATION_ID,
        ).exists()

    @classmethod
    def ops_role(cls, user) -> Optional[Role]:
        """``Role.OPS`` for operators, None for everyone else."""
        return Role.OPS if cls.is_ops_user(user) else None
