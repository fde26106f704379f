"""
Ops domain API views.

Operator lifecycle of tenant organizations and their members. Callers
without ops membership only ever see 404.
"""
import logging

from django.utils.decorators import method_decorator
from django_ratelimit.decorators import ratelimit
from drf_spectacular.utils import extend_schema, inline_serializer
from rest_framework import serializers
from rest_framework.views import APIView

from apps.organizations.executor import OpsActionExecutor
from apps.organizations.views import (
    ACTION_RESULT_SCHEMA, WRITE_RATE, action_response, malformed_body_response, request_payload,
)
from apps.rbac.permissions import IsOpsMember

logger = logging.getLogger(__name__)


@method_decorator(ratelimit(key='user_or_ip', rate=WRITE_RATE, method='POST', block=True), name='dispatch')
class OpsOrganizationListView(APIView):
    """
    GET  /orgs/  tenant organizations with member counts.
    POST /orgs/  create an organization with its single owner.
    """

    permission_classes = [IsOpsMember]

    @extend_schema(summary="List organizations", responses={200: ACTION_RESULT_SCHEMA}, tags=['Ops'])
    def get(self, request):
        return action_response(OpsActionExecutor(request.user).list_organizations())

    @extend_schema(
        summary="Create organization",
        request=inline_serializer(
            name='CreateOrganizationRequest',
            fields={
                'name': serializers.CharField(),
                'slug': serializers.SlugField(),
                'owner_email': serializers.EmailField(),
                'owner_name': serializers.CharField(),
                'plan': serializers.CharField(required=False),
            },
        ),
        responses={201: ACTION_RESULT_SCHEMA},
        tags=['Ops'],
    )
    def post(self, request):
        payload = request_payload(request)
        if payload is None:
            return malformed_body_response()
        result = OpsActionExecutor(request.user).create_organization(
            payload.get('name'),
            payload.get('slug'),
            payload.get('owner_email'),
            payload.get('owner_name'),
            payload.get('plan') or 'free',
        )
        return action_response(result)


@method_decorator(ratelimit(key='user_or_ip', rate=WRITE_RATE, method=['PATCH', 'DELETE'], block=True), name='dispatch')
class OpsOrganizationDetailView(APIView):
    """
    GET    /orgs/<org_id>/  organization with its members.
    PATCH  /orgs/<org_id>/  rename, re-slug, change plan or toggle active.
    DELETE /orgs/<org_id>/  delete; only when it has no members.
    """

    permission_classes = [IsOpsMember]

    @extend_schema(summary="Organization detail", responses={200: ACTION_RESULT_SCHEMA}, tags=['Ops'])
    def get(self, request, org_id):
        return action_response(OpsActionExecutor(request.user).list_members(org_id))

    @extend_schema(
        summary="Update organization",
        request=inline_serializer(
            name='UpdateOrganizationRequest',
            fields={
                'name': serializers.CharField(required=False),
                'slug': serializers.SlugField(required=False),
                'plan': serializers.CharField(required=False),
                'is_active': serializers.BooleanField(required=False),
            },
        ),
        responses={200: ACTION_RESULT_SCHEMA},
        tags=['Ops'],
    )
    def patch(self, request, org_id):
        payload = request_payload(request)
        if payload is None:
            return malformed_body_response()
        result = OpsActionExecutor(request.user).update_organization(
            org_id,
            name=payload.get('name'),
            slug=payload.get('slug'),
            plan=payload.get('plan'),
            is_active=payload.get('is_active'),
        )
        return action_response(result)

    @extend_schema(summary="Delete organization", responses={200: ACTION_RESULT_SCHEMA}, tags=['Ops'])
    def delete(self, request, org_id):
        return action_response(OpsActionExecutor(request.user).delete_organization(org_id))


@method_decorator(ratelimit(key='user_or_ip', rate=WRITE_RATE, method='POST', block=True), name='dispatch')
class OpsMemberListView(APIView):
    """POST /orgs/<org_id>/members/  invite a member into any tenant."""

    permission_classes = [IsOpsMember]

    @extend_schema(
        summary="Invite member",
        request=inline_serializer(
            name='OpsInviteMemberRequest',
            fields={
                'email': serializers.EmailField(),
                'name': serializers.CharField(),
                'role': serializers.ChoiceField(choices=['member', 'admin']),
            },
        ),
        responses={201: ACTION_RESULT_SCHEMA},
        tags=['Ops'],
    )
    def post(self, request, org_id):
        payload = request_payload(request)
        if payload is None:
            return malformed_body_response()
        result = OpsActionExecutor(request.user).invite_member(
            org_id,
            payload.get('email'),
            payload.get('name'),
            payload.get('role'),
        )
        return action_response(result)


@method_decorator(ratelimit(key='user_or_ip', rate=WRITE_RATE, method=['PATCH', 'DELETE'], block=True), name='dispatch')
class OpsMemberDetailView(APIView):
    """
    PATCH  /orgs/<org_id>/members/<user_id>/
    DELETE /orgs/<org_id>/members/<user_id>/
    """

    permission_classes = [IsOpsMember]

    @extend_schema(
        summary="Update member",
        request=inline_serializer(
            name='OpsUpdateMemberRequest',
            fields={
                'email': serializers.EmailField(required=False),
                'name': serializers.CharField(required=False),
                'role': serializers.ChoiceField(choices=['member', 'admin'], required=False),
            },
        ),
        responses={200: ACTION_RESULT_SCHEMA},
        tags=['Ops'],
    )
    def patch(self, request, org_id, user_id):
        payload = request_payload(request)
        if payload is None:
            return malformed_body_response()
        result = OpsActionExecutor(request.user).update_member(
            org_id,
            user_id,
            name=payload.get('name'),
            email=payload.get('email'),
            role=payload.get('role'),
        )
        return action_response(result)

    @extend_schema(summary="Remove member", responses={200: ACTION_RESULT_SCHEMA}, tags=['Ops'])
    def delete(self, request, org_id, user_id):
        return action_response(OpsActionExecutor(request.user).remove_member(org_id, user_id))
