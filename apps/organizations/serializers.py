"""
Organization and membership serializers.

Input of privileged actions is validated by the executor, so these
serializers only shape responses.
"""
from rest_framework import serializers
from apps.organizations.models import Membership


class MemberSerializer(serializers.ModelSerializer):
    """A membership with the member's identity."""

    user_id = serializers.UUIDField(source='user.id', read_only=True)
    email = serializers.EmailField(source='user.email', read_only=True)
    name = serializers.CharField(source='user.name', read_only=True)

    class Meta:
        model = Membership
        fields = ['user_id', 'email', 'name', 'role', 'created_at']
        read_only_fields = fields


class MyOrganizationSerializer(serializers.ModelSerializer):
    """One of the caller's memberships, as shown on the org switch page."""

    id = serializers.UUIDField(source='organization.id', read_only=True)
    name = serializers.CharField(source='organization.name', read_only=True)
    slug = serializers.CharField(source='organization.slug', read_only=True)
    is_active = serializers.BooleanField(source='organization.is_active', read_only=True)
    is_current = serializers.SerializerMethodField()

    class Meta:
        model = Membership
        fields = ['id', 'name', 'slug', 'role', 'is_active', 'is_current']
        read_only_fields = fields

    def get_is_current(self, obj) -> bool:
        return obj.organization_id == self.context.get('current_org_id')
