"""
Domain classification from the request host.

The host header is attacker-controlled. It only ever selects which policy
applies to a request; it never grants access on its own.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Domain(str, Enum):
    PUBLIC = 'public'
    APP = 'app'
    ADMIN = 'admin'
    OPS = 'ops'


DOMAIN_LABELS = {
    'app': Domain.APP,
    'admin': Domain.ADMIN,
    'ops': Domain.OPS,
}

# Domains that also accept a tenant subdomain: acme.app.example.com
TENANT_SUBDOMAIN_DOMAINS = (Domain.APP, Domain.ADMIN)

SLUG_PATTERN = re.compile(r'^[a-z0-9-]+$')
_HOSTNAME_PATTERN = re.compile(r'^[a-z0-9.-]+$')
_MAX_HOST_LENGTH = 253


@dataclass(frozen=True)
class HostInfo:
    domain: Domain
    tenant_slug: Optional[str] = None


def normalize_host(host):
    """Lowercase the host and strip the port and any trailing dot."""
    if not host or len(host) > _MAX_HOST_LENGTH + 6:
        return ''

    host = host.strip().lower()
    if host.startswith('['):
        # IPv6 literal, never a named domain
        return ''

    host = host.rsplit(':', 1)[0] if ':' in host else host
    host = host.rstrip('.')

    if not _HOSTNAME_PATTERN.match(host):
        return ''
    return host


def classify_host(host) -> Domain:
    """Map a request host to the domain it targets. Pure, auth-agnostic."""
    return parse_host(host).domain


def parse_host(host) -> HostInfo:
    """
    Parse a host into its domain and optional tenant slug.

    ``app.example.com``       -> app, no slug
    ``acme.admin.example.com`` -> admin, slug ``acme``
    anything else              -> public
    """
    labels = normalize_host(host).split('.')
    if len(labels) < 2 or not labels[0]:
        return HostInfo(Domain.PUBLIC)

    first = labels[0]
    if first in DOMAIN_LABELS:
        return HostInfo(DOMAIN_LABELS[first])

    if len(labels) >= 3 and labels[1] in DOMAIN_LABELS:
        domain = DOMAIN_LABELS[labels[1]]
        if domain in TENANT_SUBDOMAIN_DOMAINS and first != 'www' and SLUG_PATTERN.match(first):
            return HostInfo(domain, tenant_slug=first)

    return HostInfo(Domain.PUBLIC)
