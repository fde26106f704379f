"""
Ops domain URLs.
"""
from django.urls import path

from apps.organizations.views_ops import (
    OpsMemberDetailView,
    OpsMemberListView,
    OpsOrganizationDetailView,
    OpsOrganizationListView,
)

urlpatterns = [
    path('orgs/', OpsOrganizationListView.as_view(), name='ops-org-list'),
    path('orgs/<uuid:org_id>/', OpsOrganizationDetailView.as_view(), name='ops-org-detail'),
    path('orgs/<uuid:org_id>/members/', OpsMemberListView.as_view(), name='ops-member-list'),
    path('orgs/<uuid:org_id>/members/<uuid:user_id>/', OpsMemberDetailView.as_view(), name='ops-member-detail'),
]
