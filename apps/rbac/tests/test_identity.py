"""
Tests for reading the current subject from identity provider tokens.
"""
import datetime
import uuid

import jwt
import pytest
from django.conf import settings
from django.contrib.auth.models import AnonymousUser
from django.test import RequestFactory
from django.utils import timezone

from apps.rbac.middleware import IdentityMiddleware
from apps.rbac.models import User
from apps.rbac.roles import Role
from apps.rbac.services import IdentityService, MembershipService


def _identity(request):
    IdentityMiddleware(lambda r: None).process_request(request)
    return request


@pytest.mark.django_db
class TestIdentityService:

    def test_valid_token_resolves_user(self, make_user, token_for):
        user = make_user()
        assert IdentityService.get_user_from_token(token_for(user)) == user

    def test_expired_token_is_rejected(self, make_user, token_for):
        user = make_user()
        token = token_for(user, exp=timezone.now() - datetime.timedelta(minutes=1))
        assert IdentityService.get_user_from_token(token) is None

    def test_wrong_signature_is_rejected(self, make_user):
        user = make_user()
        token = jwt.encode(
            {'sub': str(user.id), 'exp': timezone.now() + datetime.timedelta(hours=1)},
            'a-completely-different-secret-value-0000',
            algorithm='HS256',
        )
        assert IdentityService.get_user_from_token(token) is None

    def test_token_without_expiry_is_rejected(self, make_user):
        user = make_user()
        token = jwt.encode({'sub': str(user.id)}, settings.IDP_JWT_SECRET, algorithm='HS256')
        assert IdentityService.validate_token(token) is None

    def test_unknown_subject(self, db, token_for):
        token = token_for(None, sub=str(uuid.uuid4()))
        assert IdentityService.get_user_from_token(token) is None

    def test_non_uuid_subject(self, db, token_for):
        assert IdentityService.get_user_from_token(token_for(None, sub='not-a-uuid')) is None

    def test_inactive_user_is_anonymous(self, make_user, token_for):
        user = make_user(is_active=False)
        assert IdentityService.get_user_from_token(token_for(user)) is None

    def test_garbage_token(self):
        assert IdentityService.validate_token('not.a.jwt') is None
        assert IdentityService.validate_token('') is None

    def test_audience_enforced_when_configured(self, make_user, token_for, settings):
        settings.IDP_JWT_AUDIENCE = 'authenticated'
        user = make_user()

        assert IdentityService.get_user_from_token(token_for(user)) is None
        assert IdentityService.get_user_from_token(token_for(user, aud='authenticated')) == user


@pytest.mark.django_db
class TestIdentityMiddleware:

    def setup_method(self):
        self.factory = RequestFactory()

    def test_bearer_header(self, make_user, token_for):
        user = make_user()
        request = _identity(self.factory.get('/', HTTP_AUTHORIZATION=f'Bearer {token_for(user)}'))

        assert request.user == user
        assert request.identity_source == 'header'

    def test_session_cookie(self, make_user, token_for):
        user = make_user()
        request = self.factory.get('/')
        request.COOKIES[settings.IDP_ACCESS_TOKEN_COOKIE] = token_for(user)
        _identity(request)

        assert request.user == user
        assert request.identity_source == 'cookie'

    def test_header_wins_over_cookie(self, make_user, token_for):
        header_user = make_user()
        cookie_user = make_user()
        request = self.factory.get('/', HTTP_AUTHORIZATION=f'Bearer {token_for(header_user)}')
        request.COOKIES[settings.IDP_ACCESS_TOKEN_COOKIE] = token_for(cookie_user)
        _identity(request)

        assert request.user == header_user

    def test_no_token_is_anonymous(self):
        request = _identity(self.factory.get('/'))

        assert isinstance(request.user, AnonymousUser)
        assert request.identity_source is None

    def test_bad_token_is_anonymous(self):
        request = _identity(self.factory.get('/', HTTP_AUTHORIZATION='Bearer nope'))

        assert not request.user.is_authenticated


@pytest.mark.django_db
class TestMembershipService:

    def test_ops_role(self, ops_user, owner):
        assert MembershipService.is_ops_user(ops_user)
        assert MembershipService.ops_role(ops_user) is Role.OPS
        assert MembershipService.ops_role(owner) is None

    def test_anonymous_is_not_an_operator(self):
        assert MembershipService.ops_role(AnonymousUser()) is None
        assert not MembershipService.is_ops_user(AnonymousUser())


@pytest.mark.django_db
class TestUserMirror:

    def test_get_or_create_mirror_is_case_insensitive(self, make_user):
        existing = make_user(email='Dana@Example.com')

        user, created = User.objects.get_or_create_mirror('dana@EXAMPLE.COM')

        assert not created
        assert user == existing

    def test_creates_missing_mirror(self, db):
        user, created = User.objects.get_or_create_mirror('new@example.com', name='New Person')

        assert created
        assert user.name == 'New Person'
