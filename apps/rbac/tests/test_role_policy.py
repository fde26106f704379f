"""
Tests for the role hierarchy and the Role Policy.
"""
import pytest
from hypothesis import given, strategies as st

from apps.core.exceptions import AuthenticationRequired, AuthorizationDenied, NotFound
from apps.gate.domains import Domain
from apps.rbac.roles import Action, Decision, Outcome, Role, RolePolicy


roles = st.sampled_from([None, *Role])
tenant_roles = st.sampled_from([Role.MEMBER, Role.ADMIN, Role.OWNER])
domains = st.sampled_from(list(Domain))
actions = st.sampled_from(list(Action))


class TestRoleOrdering:

    def test_tenant_roles_are_ordered(self):
        assert Role.OWNER.at_least(Role.ADMIN)
        assert Role.ADMIN.at_least(Role.MEMBER)
        assert not Role.MEMBER.at_least(Role.ADMIN)
        assert not Role.ADMIN.at_least(Role.OWNER)

    def test_ops_is_not_comparable_with_tenant_roles(self):
        for role in (Role.MEMBER, Role.ADMIN, Role.OWNER):
            assert not Role.OPS.at_least(role)
            assert not role.at_least(Role.OPS)
        assert Role.OPS.at_least(Role.OPS)

    @given(role=tenant_roles)
    def test_every_tenant_role_satisfies_itself(self, role):
        assert role.at_least(role)


class TestDomainMatrix:

    @pytest.mark.parametrize('role,domain,outcome', [
        (Role.MEMBER, Domain.APP, Outcome.ALLOW),
        (Role.ADMIN, Domain.APP, Outcome.ALLOW),
        (Role.OWNER, Domain.APP, Outcome.ALLOW),
        (Role.MEMBER, Domain.ADMIN, Outcome.FORBIDDEN),
        (Role.ADMIN, Domain.ADMIN, Outcome.ALLOW),
        (Role.OWNER, Domain.ADMIN, Outcome.ALLOW),
        (Role.OPS, Domain.APP, Outcome.FORBIDDEN),
        (Role.OPS, Domain.ADMIN, Outcome.FORBIDDEN),
        (Role.OPS, Domain.OPS, Outcome.ALLOW),
        (Role.OWNER, Domain.OPS, Outcome.NOT_FOUND),
        (None, Domain.OPS, Outcome.NOT_FOUND),
        (None, Domain.ADMIN, Outcome.FORBIDDEN),
    ])
    def test_matrix(self, role, domain, outcome):
        assert RolePolicy.evaluate(role, domain).outcome is outcome

    def test_anonymous_tenant_domain_requires_login(self):
        for domain in (Domain.APP, Domain.ADMIN):
            assert RolePolicy.evaluate(None, domain, authenticated=False).outcome is Outcome.LOGIN_REQUIRED

    def test_anonymous_ops_is_not_found(self):
        assert RolePolicy.evaluate(None, Domain.OPS, authenticated=False).outcome is Outcome.NOT_FOUND

    @given(role=roles, authenticated=st.booleans())
    def test_public_always_allows(self, role, authenticated):
        assert RolePolicy.evaluate(role, Domain.PUBLIC, authenticated=authenticated).allowed

    @given(role=roles, authenticated=st.booleans())
    def test_ops_denials_are_always_not_found(self, role, authenticated):
        decision = RolePolicy.evaluate(role, Domain.OPS, authenticated=authenticated)
        if not decision.allowed:
            assert decision.outcome is Outcome.NOT_FOUND

    @given(role=roles, domain=domains, authenticated=st.booleans())
    def test_policy_is_pure(self, role, domain, authenticated):
        first = RolePolicy.evaluate(role, domain, authenticated=authenticated)
        second = RolePolicy.evaluate(role, domain, authenticated=authenticated)
        assert first == second

    @given(role=tenant_roles)
    def test_admin_access_implies_app_access(self, role):
        if RolePolicy.evaluate(role, Domain.ADMIN).allowed:
            assert RolePolicy.evaluate(role, Domain.APP).allowed

    def test_accepts_raw_strings(self):
        assert RolePolicy.evaluate('admin', 'admin').allowed


class TestActions:

    @pytest.mark.parametrize('action', [
        Action.TRANSFER_OWNERSHIP, Action.FREEZE, Action.UNFREEZE, Action.ARCHIVE, Action.CHANGE_PLAN,
    ])
    def test_owner_only_actions(self, action):
        assert RolePolicy.required_role_for(action) is Role.OWNER
        assert RolePolicy.evaluate_action(Role.OWNER, action).allowed
        assert RolePolicy.evaluate_action(Role.ADMIN, action).outcome is Outcome.FORBIDDEN

    def test_member_management_needs_admin(self):
        assert RolePolicy.required_role_for(Action.MANAGE_MEMBERS) is Role.ADMIN
        assert RolePolicy.evaluate_action(Role.ADMIN, Action.MANAGE_MEMBERS).allowed
        assert not RolePolicy.evaluate_action(Role.MEMBER, Action.MANAGE_MEMBERS).allowed

    @given(action=actions)
    def test_owner_can_do_everything(self, action):
        assert RolePolicy.evaluate_action(Role.OWNER, action).allowed

    @given(action=actions)
    def test_ops_can_do_nothing_in_tenants(self, action):
        assert not RolePolicy.evaluate_action(Role.OPS, action).allowed


class TestDecisionExceptions:

    def test_mapping(self):
        assert isinstance(Decision(Outcome.LOGIN_REQUIRED).as_exception(), AuthenticationRequired)
        assert isinstance(Decision(Outcome.NOT_FOUND).as_exception(), NotFound)
        assert isinstance(Decision(Outcome.FORBIDDEN).as_exception(), AuthorizationDenied)
