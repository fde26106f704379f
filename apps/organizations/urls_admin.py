"""
Admin domain URLs.

Provides endpoints for:
- Member management (list, invite, update, remove)
- Organization settings (ownership transfer, freeze, unfreeze, archive)
- Audit log viewing
"""
from django.urls import include, path

from apps.organizations.views import (
    ArchiveView,
    FreezeView,
    MemberDetailView,
    MemberListView,
    TransferOwnershipView,
    UnfreezeView,
)

urlpatterns = [
    # Members
    path('members/', MemberListView.as_view(), name='admin-member-list'),
    path('members/<uuid:user_id>/', MemberDetailView.as_view(), name='admin-member-detail'),

    # Organization settings
    path('org-settings/transfer-ownership/', TransferOwnershipView.as_view(), name='admin-transfer-ownership'),
    path('org-settings/freeze/', FreezeView.as_view(), name='admin-freeze'),
    path('org-settings/unfreeze/', UnfreezeView.as_view(), name='admin-unfreeze'),
    path('org-settings/archive/', ArchiveView.as_view(), name='admin-archive'),

    path('', include('apps.audit.urls')),
]
