"""
Pytest configuration and fixtures.
"""
import datetime
import uuid

import jwt
import pytest
from django.conf import settings
from django.utils import timezone


def make_token(user, **overrides):
    """Access token the identity provider would issue for ``user``."""
    payload = {
        'sub': str(user.id) if user is not None else str(uuid.uuid4()),
        'exp': timezone.now() + datetime.timedelta(hours=1),
        'email': getattr(user, 'email', None),
    }
    payload.update(overrides)
    return jwt.encode(payload, settings.IDP_JWT_SECRET, algorithm=settings.IDP_JWT_ALGORITHM)


@pytest.fixture
def token_for():
    """Factory returning an access token for a user."""
    return make_token


@pytest.fixture
def api_client():
    """Return DRF API client."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def client_for(token_for):
    """
    Factory returning an APIClient authenticated as ``user`` on ``host``.

    ``client_for(None, 'app.local.test')`` gives an anonymous client.
    """
    from rest_framework.test import APIClient

    def make_client(user, host='app.local.test'):
        client = APIClient(HTTP_HOST=host)
        if user is not None:
            client.credentials(HTTP_AUTHORIZATION=f'Bearer {token_for(user)}')
        return client

    return make_client


@pytest.fixture
def make_user(db):
    """Factory creating identity mirror users."""
    from apps.rbac.models import User

    def create(email=None, name='Test User', **extra):
        email = email or f'user-{uuid.uuid4().hex[:8]}@example.com'
        return User.objects.create_user(email=email, name=name, **extra)

    return create


@pytest.fixture
def make_org(db):
    """Factory creating organizations."""
    from apps.organizations.models import Organization

    def create(name='Acme Corp', slug=None, **extra):
        slug = slug or f'org-{uuid.uuid4().hex[:8]}'
        return Organization.objects.create(name=name, slug=slug, **extra)

    return create


@pytest.fixture
def add_member(db):
    """Factory adding a user to an organization with a role."""
    from apps.organizations.models import Membership

    def create(organization, user, role='member'):
        return Membership.objects.create(organization=organization, user=user, role=role)

    return create


@pytest.fixture
def organization(make_org):
    """Create a test organization."""
    return make_org(name='Acme Corp', slug='acme')


@pytest.fixture
def other_organization(make_org):
    """Create another organization for isolation tests."""
    return make_org(name='Globex', slug='globex')


@pytest.fixture
def owner(make_user, add_member, organization):
    user = make_user(email='owner@acme.test', name='Olive Owner')
    add_member(organization, user, 'owner')
    return user


@pytest.fixture
def admin_user(make_user, add_member, organization):
    user = make_user(email='admin@acme.test', name='Adam Admin')
    add_member(organization, user, 'admin')
    return user


@pytest.fixture
def member(make_user, add_member, organization):
    user = make_user(email='member@acme.test', name='Mia Member')
    add_member(organization, user, 'member')
    return user


@pytest.fixture
def outsider(make_user):
    """Signed-in user with no memberships at all."""
    return make_user(email='outsider@example.com', name='Otto Outsider')


@pytest.fixture
def ops_organization(db):
    """Operator organization created by migration."""
    from apps.organizations.models import Organization
    return Organization.objects.get(id=settings.OPS_ORGANIZATION_ID)


@pytest.fixture
def ops_user(make_user, add_member, ops_organization):
    user = make_user(email='operator@ops.test', name='Opal Operator')
    add_member(ops_organization, user, 'ops')
    return user
