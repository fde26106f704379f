"""
Request gate.

Single chokepoint in front of every handler. For each request it produces
exactly one of: pass-through to the domain's handler tree (with the path
rewritten to ``/<domain>/<path>``), a sign-in redirect, a 403, or a 404.
It never writes audit entries.
"""
import logging
from urllib.parse import urlencode

from django.conf import settings
from django.http import HttpResponseRedirect, JsonResponse
from django.utils.deprecation import MiddlewareMixin

from apps.core.logging import SecurityLogger
from apps.core.middleware import bind_org_to_log_context
from apps.gate.domains import Domain, SLUG_PATTERN, parse_host
from apps.rbac.roles import Outcome, RolePolicy
from apps.rbac.services import MembershipService

logger = logging.getLogger(__name__)

# Path prefixes that carry an explicit organization slug: /org/acme/...
ORG_PATH_PREFIXES = ('org', 'o')

ORG_QUERY_PARAM = 'org'

# Sec-Fetch-Site values a partial navigation may carry
SAME_ORIGIN_FETCH_SITES = ('same-origin', 'same-site')


def explicit_org_slug(path, query, host_info):
    """
    Explicit organization slug for a request, or None.

    Path segment first, then the ``org`` query parameter, then the tenant
    subdomain. Invalid slugs are ignored rather than looked up.
    """
    segments = [segment for segment in path.split('/') if segment]
    if len(segments) >= 2 and segments[0] in ORG_PATH_PREFIXES:
        candidate = segments[1].lower()
        if SLUG_PATTERN.match(candidate):
            return candidate

    candidate = (query.get(ORG_QUERY_PARAM) or '').strip().lower()
    if candidate and SLUG_PATTERN.match(candidate):
        return candidate

    return host_info.tenant_slug


class RequestGateMiddleware(MiddlewareMixin):
    """
    Compose domain classification, org resolution and the Role Policy.

    Runs after IdentityMiddleware so ``request.user`` is set. Attaches
    ``request.domain``, ``request.org_slug`` and, when lookups ran,
    ``request.org_resolution``.
    """

    # Served as-is on every host, never rewritten.
    PASSTHROUGH_PATHS = (
        '/healthz',
        '/schema/',
        '/favicon.ico',
        '/robots.txt',
    )

    # App paths that only need a signed-in subject, not a resolved org.
    ORG_OPTIONAL_APP_PATHS = (
        '/switch-org',
        '/me',
    )

    def process_request(self, request):
        path = request.path_info

        if self._is_passthrough(path):
            return None

        host_info = parse_host(request.get_host())
        domain = host_info.domain
        request.domain = domain
        request.org_slug = explicit_org_slug(path, request.GET, host_info)

        original_url = request.build_absolute_uri()
        self._rewrite(request, domain)

        if self._is_data_request(request):
            # Views re-check through the DRF permission classes.
            return None

        if domain is Domain.PUBLIC:
            return None

        if domain is Domain.OPS:
            return self._gate_ops(request, path)

        return self._gate_tenant(request, domain, path, original_url)

    def _gate_ops(self, request, path):
        user = request.user
        authenticated = user.is_authenticated
        role = MembershipService.ops_role(user) if authenticated else None

        decision = RolePolicy.evaluate(role, Domain.OPS, authenticated=authenticated)
        if decision.allowed:
            return None

        SecurityLogger.log_ops_probe(
            user_id=str(user.id) if authenticated else None,
            path=path,
            ip_address=self._client_ip(request),
        )
        return self._not_found()

    def _gate_tenant(self, request, domain, path, original_url):
        from apps.organizations.resolver import OrgResolver, Outcome as ResolutionOutcome

        user = request.user
        if not user.is_authenticated:
            decision = RolePolicy.evaluate(None, domain, authenticated=False)
            self._log_denied(request, domain, decision.reason, path)
            return self._login_redirect(original_url)

        if domain is Domain.APP and self._is_org_optional(path):
            return None

        resolution = OrgResolver.resolve(user, request.org_slug)
        request.org_resolution = resolution

        if resolution.outcome is ResolutionOutcome.NOT_FOUND:
            self._log_denied(request, domain, 'org_not_found', path)
            return self._not_found()

        if resolution.outcome is ResolutionOutcome.NO_ORG:
            return HttpResponseRedirect(f"{settings.APP_URL.rstrip('/')}/switch-org")

        decision = RolePolicy.evaluate(resolution.role, domain)
        if decision.outcome is Outcome.FORBIDDEN:
            self._log_denied(request, domain, decision.reason, path)
            return self._error_response(
                'FORBIDDEN',
                'You do not have permission to access this area.',
                status=403,
            )
        if not decision.allowed:
            return self._not_found()

        bind_org_to_log_context(resolution.context.org_id)
        return None

    def _is_passthrough(self, path):
        if path.startswith(settings.STATIC_URL):
            return True
        return any(
            path == prefix.rstrip('/') or path.startswith(prefix.rstrip('/') + '/')
            for prefix in self.PASSTHROUGH_PATHS
        )

    def _is_org_optional(self, path):
        return any(
            path == prefix or path.startswith(prefix + '/')
            for prefix in self.ORG_OPTIONAL_APP_PATHS
        )

    @staticmethod
    def _is_data_request(request):
        """Same-origin partial navigation or prefetch, not a page navigation."""
        if request.method not in ('GET', 'HEAD'):
            return False
        headers = request.headers
        fetch_site = headers.get('Sec-Fetch-Site')
        if fetch_site is not None and fetch_site not in SAME_ORIGIN_FETCH_SITES:
            return False
        if headers.get('RSC') == '1' or headers.get('Next-Router-Prefetch'):
            return True
        purpose = (headers.get('Sec-Purpose') or headers.get('Purpose') or '').lower()
        return 'prefetch' in purpose

    @staticmethod
    def _rewrite(request, domain):
        rewritten = f"/{domain.value}{request.path_info}"
        request.path_info = rewritten
        request.path = f"{request.META.get('SCRIPT_NAME', '').rstrip('/')}{rewritten}"

    @staticmethod
    def _login_redirect(original_url):
        query = urlencode({'next': original_url})
        return HttpResponseRedirect(f"{settings.WWW_URL.rstrip('/')}/login?{query}")

    def _not_found(self):
        return self._error_response('NOT_FOUND', 'Not found', status=404)

    @staticmethod
    def _error_response(code, message, status):
        """Generate standardized error response."""
        return JsonResponse(
            {
                'error': {
                    'code': code,
                    'message': message,
                }
            },
            status=status,
        )

    def _log_denied(self, request, domain, reason, path):
        user = request.user
        SecurityLogger.log_domain_denied(
            domain.value,
            reason,
            user_id=str(user.id) if user.is_authenticated else None,
            path=path,
            ip_address=self._client_ip(request),
        )

    @staticmethod
    def _client_ip(request):
        return request.META.get('REMOTE_ADDR')
