"""
URL configuration for OrgShell.

The request gate rewrites every request path to ``/<domain>/<path>``, so
each domain's handler tree is mounted under its domain prefix. Tenant trees
are also mounted under ``org/<slug>/`` and ``o/<slug>/``.
"""
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView

from apps.core.views import HealthCheckView, PublicIndexView

app_patterns = [
    path('', include('apps.organizations.urls_app')),
]

admin_patterns = [
    path('', include('apps.organizations.urls_admin')),
]


def _tenant_tree(patterns):
    return [
        path('', include(patterns)),
        path('org/<slug:org_slug>/', include(patterns)),
        path('o/<slug:org_slug>/', include(patterns)),
    ]


urlpatterns = [
    # Served on every host without rewriting
    path('healthz', HealthCheckView.as_view(), name='health-check'),
    path('schema/', SpectacularAPIView.as_view(), name='schema'),

    # Domain handler trees
    path('public/', PublicIndexView.as_view(), name='public-index'),
    path('app/', include(_tenant_tree(app_patterns))),
    path('admin/', include(_tenant_tree(admin_patterns))),
    path('ops/', include('apps.organizations.urls_ops')),
]
