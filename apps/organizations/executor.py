"""
Privileged Action Executor.

Every tenant-mutating action runs the same sequence:
validate input -> resolve org and authorize -> mutate -> audit -> result.

Taxonomy exceptions are raised inside an action and converted to an
ActionResult at the boundary, so nothing propagates to the caller and no
action ever redirects. ``next_url`` tells the caller where to go.
"""
import logging
import re
import uuid
from typing import Optional

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Count
from django.utils import timezone

from apps.audit.services import AuditAction, AuditTrail
from apps.core.exceptions import (
    AuthenticationRequired, NotFound, OrgShellException, StateConflict,
    StorageFailure, ValidationError,
)
from apps.core.logging import SecurityLogger
from apps.core.middleware import bind_org_to_log_context
from apps.core.results import ActionResult
from apps.gate.domains import Domain, SLUG_PATTERN
from apps.organizations.active_org import ActiveOrgStore
from apps.organizations.models import Membership, Organization
from apps.organizations.resolver import OrgResolver
from apps.rbac.models import User
from apps.rbac.roles import ASSIGNABLE_ROLES, Action, Role, RolePolicy
from apps.rbac.services import MembershipService

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

CONCURRENT_CHANGE_MESSAGE = (
    'The organization was changed by another request. Reload and try again.'
)


def _require_uuid(value, field):
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(
            f'Invalid {field}',
            field_errors={field: 'Must be a valid identifier'},
        )


def _require_text(value, field, message):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message, field_errors={field: message})
    return value.strip()


def _require_email(value, field='email'):
    if not isinstance(value, str) or not EMAIL_PATTERN.match(value.strip()):
        raise ValidationError(
            'Enter a valid email address',
            field_errors={field: 'Enter a valid email address'},
        )
    return value.strip()


def _require_assignable_role(value, field='role'):
    if value in (Role.OWNER, Role.OWNER.value):
        raise ValidationError(
            'Ownership can only be changed through an ownership transfer',
            field_errors={field: 'The owner role cannot be assigned here'},
        )
    if value not in [role.value for role in ASSIGNABLE_ROLES]:
        raise ValidationError(
            'Role must be member or admin',
            field_errors={field: 'Role must be member or admin'},
        )
    return Role(value)


def _org_data(organization):
    return {
        'id': str(organization.id),
        'name': organization.name,
        'slug': organization.slug,
        'plan': organization.plan,
        'is_active': organization.is_active,
        'archived_at': organization.archived_at.isoformat() if organization.archived_at else None,
    }


def _member_data(membership):
    return {
        'user_id': str(membership.user_id),
        'email': membership.user.email,
        'name': membership.user.name,
        'role': membership.role,
    }


class BaseActionExecutor:
    """
    Shared boundary handling for every executor.

    ``_run`` is the only place taxonomy exceptions and storage errors are
    turned into an ActionResult.
    """

    def __init__(self, actor):
        self.actor = actor

    def _run(self, action_name, func, *args, **kwargs) -> ActionResult:
        try:
            return func(*args, **kwargs)
        except OrgShellException as exc:
            logger.info(
                f"Action {action_name} refused: {exc.code}",
                extra={'action': action_name, 'error_code': exc.code, 'actor_id': self._actor_id()}
            )
            return ActionResult.fail(exc)
        except DatabaseError:
            logger.error(
                f"Action {action_name} failed in storage",
                extra={'action': action_name, 'actor_id': self._actor_id()},
                exc_info=True
            )
            return ActionResult.storage_failure()

    def _actor_id(self):
        if self.actor is not None and self.actor.is_authenticated:
            return str(self.actor.id)
        return None

    def _require_actor(self):
        if self.actor is None or not self.actor.is_authenticated:
            raise AuthenticationRequired()

    def _audit(self, org_id, user_id, action, payload):
        """
        Append the audit entry for a mutation that already succeeded.

        The mutation cannot be undone at this point, so a failed write is
        raised as a critical security event and the action still succeeds.
        """
        try:
            AuditTrail.append(org_id, user_id, action, payload)
        except DatabaseError:
            logger.error(
                f"Audit write failed for {action}",
                extra={'org_id': str(org_id), 'action': action},
                exc_info=True
            )
            SecurityLogger.log_event(
                'audit_write_failed',
                level='critical',
                org_id=str(org_id),
                user_id=str(user_id) if user_id else None,
                action=action,
            )

    def _claim(self, organization, **changes):
        """Version-guarded update of the organization row."""
        if not Organization.objects.claim(organization.id, organization.version, **changes):
            raise StateConflict(CONCURRENT_CHANGE_MESSAGE)
        organization.refresh_from_db()
        return organization


class MemberOperations:
    """
    Member invite/update/remove against one organization.

    The owner is protected here regardless of who calls: an owner's role
    never changes through update and an owner is never removed.
    """

    def _invite(self, organization, audit_user_id, email, name, role, extra_payload=None):
        email = _require_email(email)
        name = _require_text(name, 'name', 'Name is required')
        role = _require_assignable_role(role)

        with transaction.atomic():
            user, created = User.objects.get_or_create_mirror(email, name=name)
            if Membership.objects.filter(organization=organization, user=user).exists():
                raise StateConflict('This user is already a member of the organization')
            try:
                membership = Membership.objects.create(
                    organization=organization,
                    user=user,
                    role=role,
                )
            except IntegrityError:
                raise StateConflict('This user is already a member of the organization')

        context_set = ActiveOrgStore.set_if_absent(user, organization)

        payload = {
            'invited_user_id': str(user.id),
            'invited_email': user.email,
            'invited_name': name,
            'invited_role': role.value,
            'identity_created': created,
            'active_context_set': context_set,
        }
        payload.update(extra_payload or {})
        self._audit(organization.id, audit_user_id, AuditAction.MEMBER_INVITED, payload)

        return membership

    def _update(self, organization, audit_user_id, user_id, name=None, email=None,
                role=None, extra_payload=None):
        target_id = _require_uuid(user_id, 'user_id')
        if name is not None:
            name = _require_text(name, 'name', 'Name is required')
        if email is not None:
            email = _require_email(email)
        if role in (Role.OWNER, Role.OWNER.value):
            role = Role.OWNER
        elif role is not None:
            role = _require_assignable_role(role)

        membership = (
            Membership.objects
            .select_related('user')
            .filter(organization=organization, user_id=target_id)
            .first()
        )
        if membership is None:
            raise NotFound('Member not found')

        old_role = Role(membership.role)
        if role is Role.OWNER and old_role is not Role.OWNER:
            _require_assignable_role(role)
        if old_role is Role.OWNER and role is not None and role is not Role.OWNER:
            raise StateConflict(
                "The owner's role cannot be changed. Use an ownership transfer instead."
            )

        user = membership.user
        changes = {}
        if name is not None and name != user.name:
            changes['name'] = name
        if email is not None and User.objects.normalize_email(email) != user.email:
            normalized = User.objects.normalize_email(email)
            if User.objects.filter(email__iexact=normalized).exclude(id=user.id).exists():
                raise StateConflict(
                    'This email address is already in use',
                    details={'field': 'email'},
                )
            changes['email'] = normalized

        with transaction.atomic():
            if changes:
                for field, value in changes.items():
                    setattr(user, field, value)
                user.save(update_fields=list(changes) + ['updated_at'])

            role_changed = role is not None and role is not old_role
            if role_changed:
                if not Membership.objects.set_role_if(organization, target_id, old_role, role):
                    raise StateConflict(CONCURRENT_CHANGE_MESSAGE)
                membership.role = role

        payload = {
            'target_user_id': str(target_id),
            'updated_fields': sorted(changes),
        }
        if role_changed:
            payload['old_role'] = old_role.value
            payload['new_role'] = role.value
        payload.update(extra_payload or {})
        self._audit(organization.id, audit_user_id, AuditAction.MEMBER_UPDATED, payload)

        return membership

    def _remove(self, organization, audit_user_id, user_id, extra_payload=None):
        target_id = _require_uuid(user_id, 'user_id')

        membership = Membership.objects.filter(organization=organization, user_id=target_id).first()
        if membership is None:
            raise NotFound('Member not found')
        if membership.role == Role.OWNER:
            raise StateConflict(
                'The owner cannot be removed. Transfer ownership first.'
            )

        removed_role = membership.role
        deleted, _ = Membership.objects.filter(
            id=membership.id,
            role=removed_role,
        ).delete()
        if not deleted:
            raise StateConflict(CONCURRENT_CHANGE_MESSAGE)

        context_cleared = ActiveOrgStore.clear(membership.user, organization)

        payload = {
            'target_user_id': str(target_id),
            'target_role': removed_role,
            'active_context_cleared': context_cleared,
        }
        payload.update(extra_payload or {})
        self._audit(organization.id, audit_user_id, AuditAction.MEMBER_REMOVED, payload)


class OrgActionExecutor(MemberOperations, BaseActionExecutor):
    """
    Admin-domain actions on one organization, addressed by slug or, when no
    slug is given, by the actor's ActiveOrgContext.
    """

    def __init__(self, actor, org_slug: Optional[str] = None):
        super().__init__(actor)
        self.org_slug = org_slug

    def _authorize(self, action):
        """Resolve the organization and apply the Role Policy for ``action``."""
        self._require_actor()

        resolution = OrgResolver.resolve(self.actor, self.org_slug)
        if not resolution.resolved:
            raise NotFound('Organization not found')

        decision = RolePolicy.evaluate_action(resolution.role, action)
        if not decision.allowed:
            logger.info(
                f"Action {action.value} denied: {decision.reason}",
                extra={'actor_id': self._actor_id(), 'org_id': str(resolution.context.org_id)}
            )
            raise decision.as_exception()

        organization = Organization.objects.get(id=resolution.context.org_id)
        bind_org_to_log_context(organization.id)
        return organization, resolution.role

    # Ownership transfer saga

    def transfer_ownership(self, new_owner_id) -> ActionResult:
        return self._run('transfer_ownership', self._transfer_ownership, new_owner_id)

    def _transfer_ownership(self, new_owner_id):
        new_owner_id = _require_uuid(new_owner_id, 'new_owner_id')
        organization, _ = self._authorize(Action.TRANSFER_OWNERSHIP)

        if new_owner_id == self.actor.id:
            raise ValidationError(
                'You cannot transfer ownership to yourself',
                field_errors={'new_owner_id': 'Choose another member'},
            )

        target = Membership.objects.filter(organization=organization, user_id=new_owner_id).first()
        if target is None:
            raise NotFound('The new owner must be a member of this organization')
        new_owner_old_role = Role(target.role)

        # Claim the organization so a concurrent transfer loses before any
        # membership row is touched.
        self._claim(organization)

        # Each step commits on its own. Downgrade first so there are never
        # two owners.
        if not self._set_role(organization, self.actor.id, Role.OWNER, Role.ADMIN):
            raise StateConflict('You are no longer the owner of this organization')

        try:
            upgraded = self._set_role(organization, new_owner_id, new_owner_old_role, Role.OWNER)
        except DatabaseError:
            logger.error(
                "Ownership transfer upgrade step failed",
                extra={'org_id': str(organization.id)},
                exc_info=True
            )
            self._compensate_transfer(organization, new_owner_id)
            raise StorageFailure()

        if not upgraded:
            self._compensate_transfer(organization, new_owner_id)
            raise StateConflict('The new owner changed while the transfer was running')

        self._audit(organization.id, self.actor.id, AuditAction.OWNERSHIP_TRANSFERRED, {
            'old_owner_id': str(self.actor.id),
            'new_owner_id': str(new_owner_id),
            'old_owner_role': Role.OWNER.value,
            'old_owner_new_role': Role.ADMIN.value,
            'new_owner_old_role': new_owner_old_role.value,
        })

        logger.info(
            "Ownership transferred",
            extra={'org_id': str(organization.id), 'new_owner_id': str(new_owner_id)}
        )
        return ActionResult.ok(
            data={
                'old_owner_id': str(self.actor.id),
                'new_owner_id': str(new_owner_id),
            },
            next_url='/members',
        )

    @staticmethod
    def _set_role(organization, user_id, expected_role, new_role):
        with transaction.atomic():
            return Membership.objects.set_role_if(organization, user_id, expected_role, new_role)

    def _compensate_transfer(self, organization, new_owner_id):
        """Restore the actor as owner after a failed upgrade step."""
        context = {
            'org_id': str(organization.id),
            'old_owner_id': str(self.actor.id),
            'new_owner_id': str(new_owner_id),
        }
        try:
            restored = self._set_role(organization, self.actor.id, Role.ADMIN, Role.OWNER)
        except DatabaseError:
            logger.error("Ownership transfer compensation raised", extra=context, exc_info=True)
            restored = False

        if restored:
            SecurityLogger.log_event('ownership_transfer_compensated', level='warning', **context)
        else:
            SecurityLogger.log_event('ownership_transfer_compensation_failed', level='critical', **context)
        return restored

    # Lifecycle

    def freeze(self, reason: str = '') -> ActionResult:
        return self._run('freeze', self._freeze, reason)

    def _freeze(self, reason):
        if reason is not None and not isinstance(reason, str):
            raise ValidationError('Invalid reason', field_errors={'reason': 'Must be text'})
        reason = (reason or '').strip()

        organization, _ = self._authorize(Action.FREEZE)
        was_active = organization.is_active
        self._claim(organization, is_active=False)

        self._audit(organization.id, self.actor.id, AuditAction.ORG_FROZEN, {
            'reason': reason,
            'frozen_by': Role.OWNER.value,
            'was_active': was_active,
        })
        return ActionResult.ok(data=_org_data(organization), next_url='/org-settings')

    def unfreeze(self) -> ActionResult:
        return self._run('unfreeze', self._unfreeze)

    def _unfreeze(self):
        organization, _ = self._authorize(Action.UNFREEZE)
        if organization.is_archived:
            raise StateConflict('An archived organization cannot be unfrozen')

        was_active = organization.is_active
        self._claim(organization, is_active=True)

        self._audit(organization.id, self.actor.id, AuditAction.ORG_UNFROZEN, {
            'unfrozen_by': Role.OWNER.value,
            'was_active': was_active,
        })
        return ActionResult.ok(data=_org_data(organization), next_url='/org-settings')

    def archive(self, confirmation_name) -> ActionResult:
        return self._run('archive', self._archive, confirmation_name)

    def _archive(self, confirmation_name):
        if not isinstance(confirmation_name, str) or not confirmation_name:
            raise ValidationError(
                'Type the organization name to confirm',
                field_errors={'confirmation_name': 'Type the organization name to confirm'},
            )

        organization, _ = self._authorize(Action.ARCHIVE)

        # Exact match, whitespace included.
        if confirmation_name != organization.name:
            raise ValidationError(
                'The organization name does not match',
                field_errors={'confirmation_name': 'The organization name does not match'},
            )
        if organization.is_archived:
            raise StateConflict('The organization is already archived')

        self._claim(organization, is_active=False, archived_at=timezone.now())

        self._audit(organization.id, self.actor.id, AuditAction.ORG_ARCHIVED, {
            'archived_by': Role.OWNER.value,
            'confirmation_name': confirmation_name,
        })
        return ActionResult.ok(data=_org_data(organization), next_url='/org-settings')

    # Members

    def invite_member(self, email, name, role) -> ActionResult:
        return self._run('invite_member', self._invite_member, email, name, role)

    def _invite_member(self, email, name, role):
        _require_email(email)
        _require_text(name, 'name', 'Name is required')
        _require_assignable_role(role)

        organization, _ = self._authorize(Action.MANAGE_MEMBERS)
        membership = self._invite(organization, self.actor.id, email, name, role)
        return ActionResult.ok(data=_member_data(membership), next_url='/members', status_code=201)

    def update_member(self, user_id, name=None, email=None, role=None) -> ActionResult:
        return self._run('update_member', self._update_member, user_id, name, email, role)

    def _update_member(self, user_id, name, email, role):
        _require_uuid(user_id, 'user_id')
        organization, _ = self._authorize(Action.MANAGE_MEMBERS)
        membership = self._update(organization, self.actor.id, user_id, name=name, email=email, role=role)
        return ActionResult.ok(data=_member_data(membership), next_url='/members')

    def remove_member(self, user_id) -> ActionResult:
        return self._run('remove_member', self._remove_member, user_id)

    def _remove_member(self, user_id):
        target_id = _require_uuid(user_id, 'user_id')
        organization, _ = self._authorize(Action.MANAGE_MEMBERS)
        self._remove(organization, self.actor.id, target_id)
        return ActionResult.ok(data={'user_id': str(target_id)}, next_url='/members')


class AppActionExecutor(BaseActionExecutor):
    """Actions of the day-to-day app domain."""

    def switch_organization(self, org_id) -> ActionResult:
        return self._run('switch_organization', self._switch_organization, org_id)

    def _switch_organization(self, org_id):
        org_uuid = _require_uuid(org_id, 'org_id')
        self._require_actor()

        resolution = OrgResolver.resolve_id(self.actor, org_uuid)
        if not resolution.resolved:
            raise NotFound('Organization not found')

        decision = RolePolicy.evaluate(resolution.role, Domain.APP)
        if not decision.allowed:
            raise NotFound('Organization not found')

        organization = Organization.objects.get(id=org_uuid)
        previous = ActiveOrgStore.get(self.actor)
        ActiveOrgStore.set(self.actor, organization)

        self._audit(organization.id, self.actor.id, AuditAction.ORG_SWITCHED, {
            'from_org_id': str(previous.id) if previous else None,
            'to_org_id': str(organization.id),
        })
        return ActionResult.ok(data={'org_id': str(organization.id)}, next_url='/')

    def update_profile(self, name) -> ActionResult:
        return self._run('update_profile', self._update_profile, name)

    def _update_profile(self, name):
        """Rename the caller. Audited against the current org when one resolves."""
        name = _require_text(name, 'name', 'Name is required')
        self._require_actor()

        user = User.objects.get(id=self.actor.id)
        old_name = user.name
        user.name = name
        user.save(update_fields=['name', 'updated_at'])
        self.actor.name = name

        resolution = OrgResolver.resolve(self.actor)
        if resolution.resolved:
            self._audit(resolution.context.org_id, self.actor.id, AuditAction.MEMBER_UPDATED, {
                'target_user_id': str(self.actor.id),
                'old_name': old_name,
                'new_name': name,
                'self_update': True,
            })
        return ActionResult.ok(data={'id': str(user.id), 'name': name}, next_url='/profile')


class OpsActionExecutor(MemberOperations, BaseActionExecutor):
    """
    Operator lifecycle actions. Audit entries carry no user id; the
    operator is recorded in the payload instead.
    """

    def _authorize(self):
        self._require_actor_or_not_found()
        decision = RolePolicy.evaluate(MembershipService.ops_role(self.actor), Domain.OPS)
        if not decision.allowed:
            SecurityLogger.log_ops_probe(user_id=self._actor_id())
            raise decision.as_exception()

    def _require_actor_or_not_found(self):
        if self.actor is None or not self.actor.is_authenticated:
            SecurityLogger.log_ops_probe()
            raise NotFound()

    def _operator_payload(self):
        return {'operator_id': str(self.actor.id)}

    def _tenant(self, org_id):
        org_uuid = _require_uuid(org_id, 'org_id')
        organization = Organization.objects.tenants().filter(id=org_uuid).first()
        if organization is None:
            raise NotFound('Organization not found')
        bind_org_to_log_context(organization.id)
        return organization

    @staticmethod
    def _validate_slug(slug):
        slug = _require_text(slug, 'slug', 'Slug is required')
        if not SLUG_PATTERN.match(slug):
            raise ValidationError(
                'Slug may contain lowercase letters, digits and hyphens only',
                field_errors={'slug': 'Use lowercase letters, digits and hyphens only'},
            )
        if slug in settings.RESERVED_ORG_SLUGS or slug == settings.OPS_ORGANIZATION_SLUG:
            raise ValidationError(
                'This slug is reserved',
                field_errors={'slug': 'This slug is reserved'},
            )
        return slug

    @staticmethod
    def _require_free_slug(slug, exclude_id=None):
        taken = Organization.objects.filter(slug=slug)
        if exclude_id is not None:
            taken = taken.exclude(id=exclude_id)
        if taken.exists():
            raise StateConflict('This slug is already in use', details={'field': 'slug'})
        return slug

    @staticmethod
    def _validate_plan(plan):
        plans = [value for value, _ in Organization.PLAN_CHOICES]
        if plan not in plans:
            raise ValidationError(
                'Unknown plan',
                field_errors={'plan': f"Plan must be one of: {', '.join(plans)}"},
            )
        return plan

    def list_organizations(self):
        """Tenant organizations with member counts, or a failure result."""
        return self._run('list_organizations', self._list_organizations)

    def _list_organizations(self):
        self._authorize()
        organizations = (
            Organization.objects.tenants()
            .annotate(member_count=Count('memberships'))
            .order_by('name')
        )
        return ActionResult.ok(data={'organizations': [
            {**_org_data(org), 'member_count': org.member_count}
            for org in organizations
        ]})

    def create_organization(self, name, slug, owner_email, owner_name, plan='free') -> ActionResult:
        return self._run(
            'create_organization', self._create_organization,
            name, slug, owner_email, owner_name, plan,
        )

    def _create_organization(self, name, slug, owner_email, owner_name, plan):
        name = _require_text(name, 'name', 'Organization name is required')
        slug = self._validate_slug(slug)
        owner_email = _require_email(owner_email, 'owner_email')
        owner_name = _require_text(owner_name, 'owner_name', 'Owner name is required')
        plan = self._validate_plan(plan or 'free')

        self._authorize()
        self._require_free_slug(slug)

        try:
            with transaction.atomic():
                organization = Organization.objects.create(
                    name=name,
                    slug=slug,
                    plan=plan,
                    is_active=True,
                )
                owner, owner_created = User.objects.get_or_create_mirror(owner_email, name=owner_name)
                Membership.objects.create(
                    organization=organization,
                    user=owner,
                    role=Role.OWNER,
                )
        except IntegrityError:
            raise StateConflict('This slug is already in use', details={'field': 'slug'})

        ActiveOrgStore.set_if_absent(owner, organization)

        self._audit(organization.id, None, AuditAction.ORGANIZATION_CREATED, {
            **self._operator_payload(),
            'org_name': organization.name,
            'org_slug': organization.slug,
            'plan': organization.plan,
            'owner_id': str(owner.id),
            'owner_email': owner.email,
            'owner_name': owner_name,
            'owner_identity_created': owner_created,
        })

        logger.info(
            f"Organization created: {organization.slug}",
            extra={'org_id': str(organization.id)}
        )
        return ActionResult.ok(data=_org_data(organization), next_url='/orgs', status_code=201)

    def update_organization(self, org_id, name=None, slug=None, plan=None, is_active=None) -> ActionResult:
        return self._run(
            'update_organization', self._update_organization,
            org_id, name, slug, plan, is_active,
        )

    def _update_organization(self, org_id, name, slug, plan, is_active):
        _require_uuid(org_id, 'org_id')
        if name is not None:
            name = _require_text(name, 'name', 'Organization name is required')
        if slug is not None:
            slug = self._validate_slug(slug)
        if plan is not None:
            plan = self._validate_plan(plan)
        if is_active is not None and not isinstance(is_active, bool):
            raise ValidationError('Invalid is_active', field_errors={'is_active': 'Must be true or false'})

        self._authorize()
        organization = self._tenant(org_id)
        if slug is not None:
            self._require_free_slug(slug, exclude_id=organization.id)
        if is_active and organization.is_archived:
            raise StateConflict('An archived organization cannot be reactivated')

        changes = {
            field: value
            for field, value in (('name', name), ('slug', slug), ('plan', plan), ('is_active', is_active))
            if value is not None and getattr(organization, field) != value
        }
        if changes:
            try:
                with transaction.atomic():
                    self._claim(organization, **changes)
            except IntegrityError:
                raise StateConflict('This slug is already in use', details={'field': 'slug'})

        self._audit(organization.id, None, AuditAction.ORG_UPDATED, {
            **self._operator_payload(),
            'updated_fields': {field: value for field, value in changes.items()},
        })
        return ActionResult.ok(data=_org_data(organization), next_url='/orgs')

    def delete_organization(self, org_id) -> ActionResult:
        return self._run('delete_organization', self._delete_organization, org_id)

    def _delete_organization(self, org_id):
        _require_uuid(org_id, 'org_id')
        self._authorize()
        organization = self._tenant(org_id)

        member_count = Membership.objects.filter(organization=organization).count()
        if member_count > 0:
            raise StateConflict(
                f'The organization still has {member_count} member(s). Remove them first.'
            )

        snapshot = {'org_name': organization.name, 'org_slug': organization.slug}
        deleted, _ = Organization.objects.filter(
            id=organization.id,
            version=organization.version,
            memberships__isnull=True,
        ).delete()
        if not deleted:
            raise StateConflict(CONCURRENT_CHANGE_MESSAGE)

        self._audit(organization.id, None, AuditAction.ORG_DELETED, {
            **self._operator_payload(),
            **snapshot,
        })
        return ActionResult.ok(data={'id': str(organization.id)}, next_url='/orgs')

    def list_members(self, org_id) -> ActionResult:
        return self._run('list_members', self._list_members, org_id)

    def _list_members(self, org_id):
        _require_uuid(org_id, 'org_id')
        self._authorize()
        organization = self._tenant(org_id)
        memberships = Membership.objects.select_related('user').filter(organization=organization)
        return ActionResult.ok(data={
            'organization': _org_data(organization),
            'members': [_member_data(m) for m in memberships],
        })

    def invite_member(self, org_id, email, name, role) -> ActionResult:
        return self._run('ops_invite_member', self._ops_invite_member, org_id, email, name, role)

    def _ops_invite_member(self, org_id, email, name, role):
        _require_uuid(org_id, 'org_id')
        _require_email(email)
        _require_text(name, 'name', 'Name is required')
        _require_assignable_role(role)

        self._authorize()
        organization = self._tenant(org_id)
        membership = self._invite(
            organization, None, email, name, role,
            extra_payload=self._operator_payload(),
        )
        return ActionResult.ok(data=_member_data(membership), status_code=201)

    def update_member(self, org_id, user_id, name=None, email=None, role=None) -> ActionResult:
        return self._run(
            'ops_update_member', self._ops_update_member,
            org_id, user_id, name, email, role,
        )

    def _ops_update_member(self, org_id, user_id, name, email, role):
        _require_uuid(org_id, 'org_id')
        _require_uuid(user_id, 'user_id')
        self._authorize()
        organization = self._tenant(org_id)
        membership = self._update(
            organization, None, user_id, name=name, email=email, role=role,
            extra_payload=self._operator_payload(),
        )
        return ActionResult.ok(data=_member_data(membership))

    def remove_member(self, org_id, user_id) -> ActionResult:
        return self._run('ops_remove_member', self._ops_remove_member, org_id, user_id)

    def _ops_remove_member(self, org_id, user_id):
        _require_uuid(org_id, 'org_id')
        _require_uuid(user_id, 'user_id')
        self._authorize()
        organization = self._tenant(org_id)
        self._remove(organization, None, user_id, extra_payload=self._operator_payload())
        return ActionResult.ok(data={'user_id': str(user_id)})
