"""
Store for the per-user "current organization" preference.

A durable single-slot key-value store per user. Writes are last-write-wins
and readers get no read-your-write guarantee across tabs or sessions that
were opened before the write.
"""
import logging

from apps.organizations.models import ActiveOrgContext, Organization

logger = logging.getLogger(__name__)


class ActiveOrgStore:
    """get/set access to ActiveOrgContext. Nothing else writes that table."""

    @staticmethod
    def get(user):
        """The user's preferred organization, or None."""
        if user is None or not user.is_authenticated:
            return None
        context = (
            ActiveOrgContext.objects
            .select_related('organization')
            .filter(user=user)
            .first()
        )
        return context.organization if context else None

    @staticmethod
    def set(user, organization: Organization):
        """Point the preference at ``organization``. Last write wins."""
        ActiveOrgContext.objects.update_or_create(
            user=user,
            defaults={'organization': organization},
        )
        logger.debug(
            "Active organization set",
            extra={'user_id': str(user.id), 'org_id': str(organization.id)}
        )

    @staticmethod
    def set_if_absent(user, organization: Organization) -> bool:
        """Set the preference only when the user has none. Returns True if set."""
        _, created = ActiveOrgContext.objects.get_or_create(
            user=user,
            defaults={'organization': organization},
        )
        return created

    @staticmethod
    def clear(user, organization: Organization = None) -> bool:
        """
        Remove the preference. With ``organization`` given, only when it
        points there. Returns True if a row was removed.
        """
        qs = ActiveOrgContext.objects.filter(user=user)
        if organization is not None:
            qs = qs.filter(organization=organization)
        deleted, _ = qs.delete()
        return deleted > 0
