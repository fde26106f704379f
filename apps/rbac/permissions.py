"""
DRF permission classes for the domain handler trees.

The request gate already applied the Role Policy for navigational
requests. These classes apply it again at the view so data-fetch requests,
which the gate only rewrites, are held to the same rules.
"""
from rest_framework.permissions import BasePermission

from apps.core.exceptions import AuthenticationRequired, NotFound
from apps.core.logging import SecurityLogger
from apps.gate.domains import Domain
from apps.rbac.roles import RolePolicy
from apps.rbac.services import MembershipService


def _is_authenticated(request):
    user = getattr(request, 'user', None)
    return bool(user is not None and user.is_authenticated)


class DomainRolePermission(BasePermission):
    """
    Resolve the caller's organization and role, then ask the Role Policy.

    Denials raise taxonomy exceptions so the custom exception handler
    renders them: 401 for anonymous callers, 404 when the organization
    cannot be resolved, 403 for insufficient roles.
    """

    domain = None

    def has_permission(self, request, view):
        from apps.organizations.resolver import resolution_for_request

        if not _is_authenticated(request):
            raise AuthenticationRequired()

        resolution = resolution_for_request(request)
        if not resolution.resolved:
            raise NotFound('Organization not found')

        decision = RolePolicy.evaluate(resolution.role, self.domain)
        if not decision.allowed:
            raise decision.as_exception()
        return True


class IsOrgAdmin(DomainRolePermission):
    """admin or owner of the resolved organization."""
    domain = Domain.ADMIN


class IsAuthenticatedSubject(BasePermission):
    """Any resolved subject, with or without an organization."""

    def has_permission(self, request, view):
        if not _is_authenticated(request):
            raise AuthenticationRequired()
        return True


class IsOpsMember(BasePermission):
    """
    Member of the operator organization.

    Every denial, anonymous callers included, is a 404.
    """

    def has_permission(self, request, view):
        authenticated = _is_authenticated(request)
        role = MembershipService.ops_role(request.user) if authenticated else None

        decision = RolePolicy.evaluate(role, Domain.OPS, authenticated=authenticated)
        if not decision.allowed:
            SecurityLogger.log_ops_probe(
                user_id=str(request.user.id) if authenticated else None,
                path=request.path,
                ip_address=request.META.get('REMOTE_ADDR'),
            )
            raise decision.as_exception()
        return True
