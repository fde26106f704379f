"""
Org Resolver.

Turns an explicit slug (path segment, query parameter or tenant subdomain)
or, when there is none, the caller's ActiveOrgContext into an OrgContext.

An unknown slug and a slug the caller is not a member of produce the same
NOT_FOUND resolution. Only the server-side log tells them apart.
"""
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from apps.core.logging import SecurityLogger
from apps.organizations.active_org import ActiveOrgStore
from apps.organizations.models import Membership, Organization
from apps.rbac.roles import Role

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    RESOLVED = 'resolved'
    NOT_FOUND = 'not_found'
    NO_ORG = 'no_org'


@dataclass(frozen=True)
class OrgContext:
    org_id: uuid.UUID
    name: str
    slug: str
    is_active: bool
    role: Role


@dataclass(frozen=True)
class OrgResolution:
    outcome: Outcome
    context: Optional[OrgContext] = None
    from_active_context: bool = False

    @property
    def resolved(self):
        return self.outcome is Outcome.RESOLVED

    @property
    def role(self):
        return self.context.role if self.context else None


NOT_FOUND = OrgResolution(Outcome.NOT_FOUND)
NO_ORG = OrgResolution(Outcome.NO_ORG)


def _context(organization, role):
    return OrgContext(
        org_id=organization.id,
        name=organization.name,
        slug=organization.slug,
        is_active=organization.is_active,
        role=Role(role),
    )


class OrgResolver:
    """
    Resolve the organization a request acts on.

    The explicit-slug path neither reads nor writes ActiveOrgContext, so two
    tabs targeting different slugs resolve independently.
    """

    @classmethod
    def resolve(cls, user, slug: Optional[str] = None) -> OrgResolution:
        if user is None or not user.is_authenticated:
            return NOT_FOUND if slug else NO_ORG

        if slug:
            return cls.resolve_slug(user, slug)
        return cls.resolve_active(user)

    @classmethod
    def resolve_slug(cls, user, slug: str) -> OrgResolution:
        organization = Organization.objects.by_slug(slug)
        if organization is None:
            SecurityLogger.log_org_resolution_denied(str(user.id), slug, 'unknown_slug')
            return NOT_FOUND
        return cls._with_membership(user, organization, slug=slug)

    @classmethod
    def resolve_id(cls, user, org_id) -> OrgResolution:
        """Resolve by organization id, with the same not-found rules as slugs."""
        try:
            org_uuid = uuid.UUID(str(org_id))
        except (TypeError, ValueError):
            return NOT_FOUND

        organization = Organization.objects.filter(id=org_uuid).first()
        if organization is None:
            SecurityLogger.log_org_resolution_denied(str(user.id), str(org_id), 'unknown_id')
            return NOT_FOUND
        return cls._with_membership(user, organization, slug=organization.slug)

    @classmethod
    def resolve_active(cls, user) -> OrgResolution:
        """Fallback to the stored preference. A stale preference resolves to nothing."""
        organization = ActiveOrgStore.get(user)
        if organization is None:
            return NO_ORG

        membership = Membership.objects.get_membership(organization, user)
        if membership is None:
            logger.info(
                "Active organization preference points at an organization without membership",
                extra={'user_id': str(user.id), 'org_id': str(organization.id)}
            )
            return NO_ORG

        return OrgResolution(
            Outcome.RESOLVED,
            context=_context(organization, membership.role),
            from_active_context=True,
        )

    @classmethod
    def _with_membership(cls, user, organization, slug):
        membership = Membership.objects.get_membership(organization, user)
        if membership is None:
            SecurityLogger.log_org_resolution_denied(str(user.id), slug, 'not_a_member')
            return NOT_FOUND
        return OrgResolution(Outcome.RESOLVED, context=_context(organization, membership.role))


def resolution_for_request(request) -> OrgResolution:
    """
    Resolution cached on the request by the gate, computed on first use
    when the gate skipped lookups.
    """
    django_request = getattr(request, '_request', request)
    cached = getattr(django_request, 'org_resolution', None)
    if cached is not None:
        return cached

    resolution = OrgResolver.resolve(
        getattr(django_request, 'user', None),
        getattr(django_request, 'org_slug', None),
    )
    django_request.org_resolution = resolution
    return resolution
