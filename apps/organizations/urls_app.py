"""
App domain URLs.

Mounted at ``/app/`` and again under ``/app/org/<slug>/`` and
``/app/o/<slug>/`` for explicit organization selection.
"""
from django.urls import path

from apps.organizations import views

urlpatterns = [
    path('me/', views.MeView.as_view(), name='app-me'),
    path('switch-org/', views.SwitchOrgView.as_view(), name='app-switch-org'),
]
