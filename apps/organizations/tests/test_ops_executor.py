"""
Tests for operator lifecycle actions.
"""
import uuid
from unittest.mock import patch

import pytest

from apps.audit.models import AuditLogEntry
from apps.organizations.active_org import ActiveOrgStore
from apps.organizations.executor import OpsActionExecutor
from apps.organizations.models import Membership, Organization
from apps.rbac.models import User
from apps.rbac.roles import Role


@pytest.mark.django_db
class TestOpsAuthorization:

    def test_non_operator_gets_not_found(self, owner, organization):
        with patch('apps.organizations.executor.SecurityLogger.log_ops_probe') as log_ops_probe:
            result = OpsActionExecutor(owner).list_organizations()

        assert result.error_code == 'NOT_FOUND'
        log_ops_probe.assert_called_once()

    def test_anonymous_gets_not_found(self, db):
        assert OpsActionExecutor(None).list_organizations().error_code == 'NOT_FOUND'

    def test_tenant_owner_cannot_create(self, owner, organization):
        result = OpsActionExecutor(owner).create_organization('Initech', 'initech', 'bill@initech.test', 'Bill')

        assert result.error_code == 'NOT_FOUND'
        assert not Organization.objects.filter(slug='initech').exists()


@pytest.mark.django_db
class TestCreateOrganization:

    def test_create_with_new_owner(self, ops_user):
        result = OpsActionExecutor(ops_user).create_organization(
            'Initech', 'initech', 'Bill@Initech.test', 'Bill Lumbergh', 'business'
        )

        assert result.success
        assert result.status_code == 201
        assert result.next_url == '/orgs'

        organization = Organization.objects.get(slug='initech')
        assert organization.plan == 'business'
        owner = User.objects.by_email('bill@initech.test')
        assert Membership.objects.owners(organization).get().user == owner
        assert ActiveOrgStore.get(owner) == organization

        entry = AuditLogEntry.objects.for_org(organization.id).get()
        assert entry.action == 'organization_created'
        assert entry.user_id is None
        assert entry.payload['operator_id'] == str(ops_user.id)
        assert entry.payload['owner_email'] == 'Bill@initech.test'

    def test_existing_owner_keeps_active_context(self, ops_user, owner, organization):
        ActiveOrgStore.set(owner, organization)

        result = OpsActionExecutor(ops_user).create_organization('Second', 'second', 'owner@acme.test', 'Olive')

        assert result.success
        assert ActiveOrgStore.get(owner) == organization

    @pytest.mark.parametrize('slug', ['admin', 'www', 'ops', 'ops-system'])
    def test_reserved_slugs(self, ops_user, slug):
        result = OpsActionExecutor(ops_user).create_organization('X', slug, 'x@example.com', 'X')

        assert result.error_code == 'VALIDATION_ERROR'
        assert 'slug' in result.field_errors

    @pytest.mark.parametrize('slug', ['Upper', 'has space', 'under_score', ''])
    def test_invalid_slugs(self, ops_user, slug):
        result = OpsActionExecutor(ops_user).create_organization('X', slug, 'x@example.com', 'X')

        assert result.error_code == 'VALIDATION_ERROR'

    def test_taken_slug_conflicts(self, ops_user, organization):
        result = OpsActionExecutor(ops_user).create_organization('Another Acme', 'acme', 'x@example.com', 'X')

        assert result.error_code == 'STATE_CONFLICT'

    def test_unknown_plan(self, ops_user):
        result = OpsActionExecutor(ops_user).create_organization('X', 'x-org', 'x@example.com', 'X', 'platinum')

        assert result.error_code == 'VALIDATION_ERROR'
        assert 'plan' in result.field_errors


@pytest.mark.django_db
class TestListAndUpdate:

    def test_list_excludes_ops_org_and_counts_members(self, ops_user, owner, member, organization):
        result = OpsActionExecutor(ops_user).list_organizations()

        organizations = {org['slug']: org for org in result.data['organizations']}
        assert 'ops-system' not in organizations
        assert organizations['acme']['member_count'] == 2

    def test_update(self, ops_user, organization):
        result = OpsActionExecutor(ops_user).update_organization(
            organization.id, name='Acme Inc', plan='enterprise'
        )

        organization.refresh_from_db()
        assert result.success
        assert organization.name == 'Acme Inc'
        assert organization.plan == 'enterprise'
        entry = AuditLogEntry.objects.for_org(organization.id).get()
        assert entry.action == 'org_updated'
        assert entry.payload['updated_fields'] == {'name': 'Acme Inc', 'plan': 'enterprise'}

    def test_slug_change_conflict(self, ops_user, organization, other_organization):
        result = OpsActionExecutor(ops_user).update_organization(organization.id, slug='globex')

        assert result.error_code == 'STATE_CONFLICT'

    def test_archived_org_cannot_be_reactivated(self, ops_user, owner, organization):
        from apps.organizations.executor import OrgActionExecutor
        OrgActionExecutor(owner, 'acme').archive('Acme Corp')

        result = OpsActionExecutor(ops_user).update_organization(organization.id, is_active=True)

        assert result.error_code == 'STATE_CONFLICT'

    def test_ops_org_is_not_addressable(self, ops_user, ops_organization):
        result = OpsActionExecutor(ops_user).update_organization(ops_organization.id, name='Hacked')

        assert result.error_code == 'NOT_FOUND'

    def test_unknown_org(self, ops_user):
        assert OpsActionExecutor(ops_user).update_organization(uuid.uuid4(), name='X').error_code == 'NOT_FOUND'


@pytest.mark.django_db
class TestDeleteOrganization:

    def test_org_with_members_cannot_be_deleted(self, ops_user, owner, organization):
        result = OpsActionExecutor(ops_user).delete_organization(organization.id)

        assert result.error_code == 'STATE_CONFLICT'
        assert Organization.objects.filter(id=organization.id).exists()

    def test_empty_org_is_deleted_and_audit_survives(self, ops_user, make_org):
        empty = make_org(name='Empty', slug='empty')

        result = OpsActionExecutor(ops_user).delete_organization(empty.id)

        assert result.success
        assert not Organization.objects.filter(id=empty.id).exists()
        entry = AuditLogEntry.objects.for_org(empty.id).get()
        assert entry.action == 'org_deleted'
        assert entry.payload['org_slug'] == 'empty'


@pytest.mark.django_db
class TestOpsMembers:

    def test_invite_update_remove(self, ops_user, owner, organization):
        executor = OpsActionExecutor(ops_user)

        invited = executor.invite_member(organization.id, 'new@example.com', 'New', 'member')
        assert invited.success
        user_id = invited.data['user_id']

        updated = executor.update_member(organization.id, user_id, role='admin')
        assert updated.success
        assert updated.data['role'] == Role.ADMIN

        removed = executor.remove_member(organization.id, user_id)
        assert removed.success

        actions = set(AuditLogEntry.objects.for_org(organization.id).values_list('action', flat=True))
        assert actions == {'member_invited', 'member_updated', 'member_removed'}
        assert not AuditLogEntry.objects.for_org(organization.id).filter(user_id__isnull=False).exists()

    def test_owner_protected_from_operators(self, ops_user, owner, organization):
        executor = OpsActionExecutor(ops_user)

        assert executor.update_member(organization.id, owner.id, role='admin').error_code == 'STATE_CONFLICT'
        assert executor.remove_member(organization.id, owner.id).error_code == 'STATE_CONFLICT'

    def test_list_members(self, ops_user, owner, member, organization):
        result = OpsActionExecutor(ops_user).list_members(organization.id)

        assert result.data['organization']['slug'] == 'acme'
        assert {m['email'] for m in result.data['members']} == {'owner@acme.test', 'member@acme.test'}
