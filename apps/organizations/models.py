"""
Tenant models: Organization, Membership and the ActiveOrgContext preference.
"""
import logging
from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone
from apps.core.models import BaseModel
from apps.rbac.roles import Role

logger = logging.getLogger(__name__)


class OrganizationManager(models.Manager):
    """Manager for Organization queries."""

    def by_slug(self, slug):
        """Find an organization by slug, or None."""
        if not slug:
            return None
        return self.filter(slug=slug).first()

    def tenants(self):
        """Every organization except the operator organization."""
        return self.exclude(id=settings.OPS_ORGANIZATION_ID)

    def claim(self, org_id, expected_version, **changes):
        """
        Compare-and-set update guarded by the row version.

        Returns True when this caller won the claim. The version is bumped
        in the same statement so a concurrent claim on the old version loses.
        """
        updated = self.filter(id=org_id, version=expected_version).update(
            version=F('version') + 1,
            updated_at=timezone.now(),
            **changes
        )
        return updated == 1


class Organization(BaseModel):
    """
    Tenant - the unit of data isolation.

    Created by an operator with exactly one owner. Frozen organizations
    have ``is_active=False``; archived ones also carry ``archived_at``.
    """

    PLAN_CHOICES = [
        ('free', 'Free'),
        ('starter', 'Starter'),
        ('business', 'Business'),
        ('enterprise', 'Enterprise'),
    ]

    name = models.CharField(max_length=255, help_text="Display name")
    slug = models.SlugField(
        max_length=63,
        unique=True,
        help_text="Subdomain label and URL identifier"
    )
    plan = models.CharField(
        max_length=20,
        choices=PLAN_CHOICES,
        default='free',
        db_index=True,
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="False while the organization is frozen or archived"
    )
    archived_at = models.DateTimeField(null=True, blank=True)
    version = models.PositiveIntegerField(
        default=1,
        help_text="Bumped by every guarded state change"
    )

    objects = OrganizationManager()

    class Meta:
        db_table = 'organizations'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.slug})"

    @property
    def is_archived(self):
        return self.archived_at is not None

    @property
    def is_ops_organization(self):
        return str(self.id) == str(settings.OPS_ORGANIZATION_ID)


class MembershipManager(models.Manager):
    """Manager for Membership queries."""

    def for_organization(self, organization):
        return self.filter(organization=organization)

    def for_user(self, user):
        return self.filter(user=user)

    def get_membership(self, organization, user):
        """Membership of ``user`` in ``organization``, or None."""
        if organization is None or user is None:
            return None
        return self.filter(organization=organization, user=user).first()

    def owners(self, organization):
        return self.filter(organization=organization, role=Role.OWNER)

    def set_role_if(self, organization, user_id, expected_role, new_role):
        """
        Conditional role change. Returns True when exactly one row moved
        from ``expected_role`` to ``new_role``.
        """
        updated = self.filter(
            organization=organization,
            user_id=user_id,
            role=expected_role,
        ).update(role=new_role, updated_at=timezone.now())
        return updated == 1


class Membership(BaseModel):
    """
    (user, organization) -> role.

    At most one owner per organization is enforced by a partial unique
    constraint. Ownership only moves through the transfer saga.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='memberships',
    )
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='memberships',
    )
    role = models.CharField(
        max_length=10,
        choices=Role.choices,
        default=Role.MEMBER,
        db_index=True,
    )

    objects = MembershipManager()

    class Meta:
        db_table = 'memberships'
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'organization'],
                name='unique_membership_per_org',
            ),
            models.UniqueConstraint(
                fields=['organization'],
                condition=Q(role='owner'),
                name='one_owner_per_org',
            ),
        ]
        indexes = [
            models.Index(fields=['organization', 'role'], name='membership_org_role_idx'),
        ]

    def __str__(self):
        return f"{self.user} @ {self.organization.slug} ({self.role})"


class ActiveOrgContext(BaseModel):
    """
    Per-user durable "current organization" preference.

    Last write wins. Only the no-slug fallback path of the resolver and the
    org switch action touch it.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='active_org_context',
    )
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='+',
    )

    class Meta:
        db_table = 'user_org_context'

    def __str__(self):
        return f"{self.user_id} -> {self.organization_id}"
