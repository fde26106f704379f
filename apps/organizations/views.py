"""
App and admin domain API views.

Handles:
- Current subject and org switching (app domain)
- Member listing, invite, update and removal (admin domain)
- Ownership transfer, freeze, unfreeze and archive (admin domain)

Every mutating view delegates to the action executor and renders its
ActionResult; views never decide authorization on their own beyond the
permission classes.
"""
import logging
from collections.abc import Mapping

from django.utils.decorators import method_decorator
from django_ratelimit.decorators import ratelimit
from drf_spectacular.utils import extend_schema, inline_serializer
from rest_framework import serializers
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.exceptions import ValidationError
from apps.core.results import ActionResult
from apps.organizations.active_org import ActiveOrgStore
from apps.organizations.executor import AppActionExecutor, OrgActionExecutor
from apps.organizations.models import Membership
from apps.organizations.resolver import resolution_for_request
from apps.organizations.serializers import MemberSerializer, MyOrganizationSerializer
from apps.rbac.permissions import IsAuthenticatedSubject, IsOrgAdmin

logger = logging.getLogger(__name__)

ACTION_RESULT_SCHEMA = inline_serializer(
    name='ActionResult',
    fields={
        'success': serializers.BooleanField(),
        'next_url': serializers.CharField(allow_null=True),
        'data': serializers.DictField(required=False),
        'error': serializers.DictField(required=False),
    },
)

WRITE_RATE = '30/m'


def action_response(result):
    """Render an ActionResult with the status of its outcome."""
    return Response(result.to_dict(), status=result.status_code)


def _org_slug(request):
    return getattr(request, 'org_slug', None)


def request_payload(request):
    """The request body as a mapping, or None when it is not a JSON object."""
    data = request.data
    return data if isinstance(data, Mapping) else None


def malformed_body_response():
    return action_response(ActionResult.fail(ValidationError('Request body must be a JSON object')))


# ===== APP DOMAIN =====

@method_decorator(ratelimit(key='user_or_ip', rate=WRITE_RATE, method='PATCH', block=True), name='dispatch')
class MeView(APIView):
    """
    GET   /me/  the current subject and the organization it is acting in, if any.
    PATCH /me/  change the caller's own display name.
    """

    permission_classes = [IsAuthenticatedSubject]

    @extend_schema(summary="Current subject", tags=['App'])
    def get(self, request, org_slug=None):
        user = request.user
        resolution = resolution_for_request(request)
        context = resolution.context

        return Response({
            'id': str(user.id),
            'email': user.email,
            'name': user.name,
            'organization': {
                'id': str(context.org_id),
                'name': context.name,
                'slug': context.slug,
                'role': context.role.value,
                'is_active': context.is_active,
            } if context else None,
        })

    @extend_schema(
        summary="Update my profile",
        request=inline_serializer(name='UpdateProfileRequest', fields={'name': serializers.CharField()}),
        responses={200: ACTION_RESULT_SCHEMA},
        tags=['App'],
    )
    def patch(self, request, org_slug=None):
        payload = request_payload(request)
        if payload is None:
            return malformed_body_response()
        result = AppActionExecutor(request.user).update_profile(payload.get('name'))
        return action_response(result)


@method_decorator(ratelimit(key='user_or_ip', rate=WRITE_RATE, method='POST', block=True), name='dispatch')
class SwitchOrgView(APIView):
    """
    GET  /switch-org/  lists the caller's organizations.
    POST /switch-org/  makes one of them the active organization.
    """

    permission_classes = [IsAuthenticatedSubject]

    @extend_schema(summary="List my organizations", responses={200: MyOrganizationSerializer(many=True)}, tags=['App'])
    def get(self, request, org_slug=None):
        memberships = (
            Membership.objects
            .select_related('organization')
            .filter(user=request.user)
            .order_by('organization__name')
        )
        current = ActiveOrgStore.get(request.user)
        serializer = MyOrganizationSerializer(
            memberships,
            many=True,
            context={'current_org_id': current.id if current else None},
        )
        return Response({'organizations': serializer.data})

    @extend_schema(
        summary="Switch active organization",
        request=inline_serializer(name='SwitchOrgRequest', fields={'org_id': serializers.UUIDField()}),
        responses={200: ACTION_RESULT_SCHEMA},
        tags=['App'],
    )
    def post(self, request, org_slug=None):
        payload = request_payload(request)
        if payload is None:
            return malformed_body_response()
        result = AppActionExecutor(request.user).switch_organization(payload.get('org_id'))
        return action_response(result)


# ===== ADMIN DOMAIN =====

@method_decorator(ratelimit(key='user_or_ip', rate=WRITE_RATE, method='POST', block=True), name='dispatch')
class MemberListView(APIView):
    """
    GET  /members/  members of the resolved organization.
    POST /members/  invite a member (role member or admin).
    """

    permission_classes = [IsOrgAdmin]

    @extend_schema(summary="List members", responses={200: MemberSerializer(many=True)}, tags=['Admin - Members'])
    def get(self, request, org_slug=None):
        context = resolution_for_request(request).context
        memberships = (
            Membership.objects
            .select_related('user')
            .filter(organization_id=context.org_id)
        )
        return Response({'members': MemberSerializer(memberships, many=True).data})

    @extend_schema(
        summary="Invite member",
        request=inline_serializer(
            name='InviteMemberRequest',
            fields={
                'email': serializers.EmailField(),
                'name': serializers.CharField(),
                'role': serializers.ChoiceField(choices=['member', 'admin']),
            },
        ),
        responses={201: ACTION_RESULT_SCHEMA},
        tags=['Admin - Members'],
    )
    def post(self, request, org_slug=None):
        payload = request_payload(request)
        if payload is None:
            return malformed_body_response()
        result = OrgActionExecutor(request.user, _org_slug(request)).invite_member(
            payload.get('email'),
            payload.get('name'),
            payload.get('role'),
        )
        return action_response(result)


@method_decorator(ratelimit(key='user_or_ip', rate=WRITE_RATE, method=['PATCH', 'DELETE'], block=True), name='dispatch')
class MemberDetailView(APIView):
    """
    PATCH  /members/<user_id>/  update name, email or role.
    DELETE /members/<user_id>/  remove the member.

    The owner's role cannot change here and the owner cannot be removed.
    """

    permission_classes = [IsOrgAdmin]

    @extend_schema(
        summary="Update member",
        request=inline_serializer(
            name='UpdateMemberRequest',
            fields={
                'email': serializers.EmailField(required=False),
                'name': serializers.CharField(required=False),
                'role': serializers.ChoiceField(choices=['member', 'admin'], required=False),
            },
        ),
        responses={200: ACTION_RESULT_SCHEMA},
        tags=['Admin - Members'],
    )
    def patch(self, request, user_id, org_slug=None):
        payload = request_payload(request)
        if payload is None:
            return malformed_body_response()
        result = OrgActionExecutor(request.user, _org_slug(request)).update_member(
            user_id,
            name=payload.get('name'),
            email=payload.get('email'),
            role=payload.get('role'),
        )
        return action_response(result)

    @extend_schema(summary="Remove member", responses={200: ACTION_RESULT_SCHEMA}, tags=['Admin - Members'])
    def delete(self, request, user_id, org_slug=None):
        result = OrgActionExecutor(request.user, _org_slug(request)).remove_member(user_id)
        return action_response(result)


@method_decorator(ratelimit(key='user_or_ip', rate='10/m', method='POST', block=True), name='dispatch')
class TransferOwnershipView(APIView):
    """
    POST /org-settings/transfer-ownership/

    Owner only. The caller becomes admin, the target becomes owner.
    """

    permission_classes = [IsOrgAdmin]

    @extend_schema(
        summary="Transfer ownership",
        request=inline_serializer(name='TransferOwnershipRequest', fields={'new_owner_id': serializers.UUIDField()}),
        responses={200: ACTION_RESULT_SCHEMA},
        tags=['Admin - Organization Settings'],
    )
    def post(self, request, org_slug=None):
        payload = request_payload(request)
        if payload is None:
            return malformed_body_response()
        result = OrgActionExecutor(request.user, _org_slug(request)).transfer_ownership(
            payload.get('new_owner_id')
        )
        return action_response(result)


@method_decorator(ratelimit(key='user_or_ip', rate='10/m', method='POST', block=True), name='dispatch')
class FreezeView(APIView):
    """POST /org-settings/freeze/  owner only."""

    permission_classes = [IsOrgAdmin]

    @extend_schema(
        summary="Freeze organization",
        request=inline_serializer(name='FreezeRequest', fields={'reason': serializers.CharField(required=False)}),
        responses={200: ACTION_RESULT_SCHEMA},
        tags=['Admin - Organization Settings'],
    )
    def post(self, request, org_slug=None):
        payload = request_payload(request)
        if payload is None:
            return malformed_body_response()
        result = OrgActionExecutor(request.user, _org_slug(request)).freeze(payload.get('reason', ''))
        return action_response(result)


@method_decorator(ratelimit(key='user_or_ip', rate='10/m', method='POST', block=True), name='dispatch')
class UnfreezeView(APIView):
    """POST /org-settings/unfreeze/  owner only."""

    permission_classes = [IsOrgAdmin]

    @extend_schema(summary="Unfreeze organization", request=None, responses={200: ACTION_RESULT_SCHEMA},
                   tags=['Admin - Organization Settings'])
    def post(self, request, org_slug=None):
        result = OrgActionExecutor(request.user, _org_slug(request)).unfreeze()
        return action_response(result)


@method_decorator(ratelimit(key='user_or_ip', rate='10/m', method='POST', block=True), name='dispatch')
class ArchiveView(APIView):
    """
    POST /org-settings/archive/

    Owner only. ``confirmation_name`` must equal the organization name
    exactly.
    """

    permission_classes = [IsOrgAdmin]

    @extend_schema(
        summary="Archive organization",
        request=inline_serializer(name='ArchiveRequest', fields={'confirmation_name': serializers.CharField()}),
        responses={200: ACTION_RESULT_SCHEMA},
        tags=['Admin - Organization Settings'],
    )
    def post(self, request, org_slug=None):
        payload = request_payload(request)
        if payload is None:
            return malformed_body_response()
        result = OrgActionExecutor(request.user, _org_slug(request)).archive(
            payload.get('confirmation_name')
        )
        return action_response(result)
