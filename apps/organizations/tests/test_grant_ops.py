"""
Tests for the grant_ops management command.
"""
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from apps.organizations.models import Membership
from apps.rbac.models import User
from apps.rbac.roles import Role
from apps.rbac.services import MembershipService


@pytest.mark.django_db
class TestGrantOps:

    def test_grants_existing_user(self, make_user, ops_organization):
        user = make_user(email='sre@example.com')
        out = StringIO()

        call_command('grant_ops', 'SRE@example.com', stdout=out)

        assert 'Granted ops access' in out.getvalue()
        assert MembershipService.is_ops_user(user)
        assert Membership.objects.get(organization=ops_organization, user=user).role == Role.OPS

    def test_unknown_user_without_create_flag(self, ops_organization):
        with pytest.raises(CommandError, match='--create-user'):
            call_command('grant_ops', 'ghost@example.com', stdout=StringIO())

        assert not User.objects.filter(email='ghost@example.com').exists()

    def test_create_user(self, ops_organization):
        call_command('grant_ops', 'new-op@example.com', '--create-user', '--name', 'New Op', stdout=StringIO())

        user = User.objects.by_email('new-op@example.com')
        assert user.name == 'New Op'
        assert MembershipService.is_ops_user(user)

    def test_running_twice_is_harmless(self, ops_user):
        out = StringIO()

        call_command('grant_ops', ops_user.email, stdout=out)

        assert 'already has ops access' in out.getvalue()
        assert Membership.objects.filter(user=ops_user).count() == 1

    def test_wrong_role_in_ops_org_is_corrected(self, make_user, add_member, ops_organization):
        user = make_user(email='half@example.com')
        add_member(ops_organization, user, 'member')

        call_command('grant_ops', 'half@example.com', stdout=StringIO())

        assert Membership.objects.get(organization=ops_organization, user=user).role == Role.OPS

    def test_missing_ops_org(self, make_user, ops_organization):
        make_user(email='sre@example.com')
        ops_organization.delete()

        with pytest.raises(CommandError, match='Operator organization does not exist'):
            call_command('grant_ops', 'sre@example.com', stdout=StringIO())
