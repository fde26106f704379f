"""
Role hierarchy and the Role Policy.

Tenant roles form a strict order: member < admin < owner. The ``ops`` role
belongs to the operator organization and is not comparable with any of
them. Call sites never compare role strings; they go through
``Role.at_least`` or ``RolePolicy.evaluate``.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from django.db import models

from apps.core.exceptions import (
    AuthenticationRequired, AuthorizationDenied, NotFound,
)
from apps.gate.domains import Domain


class Role(models.TextChoices):
    MEMBER = 'member', 'Member'
    ADMIN = 'admin', 'Admin'
    OWNER = 'owner', 'Owner'
    OPS = 'ops', 'Ops'

    @property
    def is_tenant_role(self):
        return self in _TENANT_RANK

    def at_least(self, minimum):
        """
        True when this role satisfies ``minimum``.

        Tenant roles compare by rank. ``ops`` only satisfies ``ops``.
        """
        minimum = Role(minimum)
        if self is Role.OPS or minimum is Role.OPS:
            return self is minimum
        return _TENANT_RANK[self] >= _TENANT_RANK[minimum]


_TENANT_RANK = {
    Role.MEMBER: 1,
    Role.ADMIN: 2,
    Role.OWNER: 3,
}

# Roles that may be handed out through invite or member update.
ASSIGNABLE_ROLES = (Role.MEMBER, Role.ADMIN)

DOMAIN_MINIMUM_ROLE = {
    Domain.APP: Role.MEMBER,
    Domain.ADMIN: Role.ADMIN,
}


class Action(str, Enum):
    """Privileged actions that need more than the domain-level check."""
    TRANSFER_OWNERSHIP = 'transfer_ownership'
    FREEZE = 'freeze'
    UNFREEZE = 'unfreeze'
    ARCHIVE = 'archive'
    CHANGE_PLAN = 'change_plan'
    MANAGE_MEMBERS = 'manage_members'


OWNER_ONLY_ACTIONS = frozenset({
    Action.TRANSFER_OWNERSHIP,
    Action.FREEZE,
    Action.UNFREEZE,
    Action.ARCHIVE,
    Action.CHANGE_PLAN,
})


class Outcome(str, Enum):
    ALLOW = 'allow'
    LOGIN_REQUIRED = 'login_required'
    FORBIDDEN = 'forbidden'
    NOT_FOUND = 'not_found'


@dataclass(frozen=True)
class Decision:
    outcome: Outcome
    reason: str = ''

    @property
    def allowed(self):
        return self.outcome is Outcome.ALLOW

    def as_exception(self):
        """Taxonomy exception for a denied decision."""
        if self.outcome is Outcome.LOGIN_REQUIRED:
            return AuthenticationRequired()
        if self.outcome is Outcome.NOT_FOUND:
            return NotFound()
        return AuthorizationDenied()


ALLOW = Decision(Outcome.ALLOW)


class RolePolicy:
    """
    Pure mapping of (role, domain, required role) to a Decision. No I/O.

    ``role`` is the caller's role in the resolved organization, or
    ``Role.OPS`` for an operator on the ops domain, or None when nothing
    was resolved. ``authenticated`` tells an anonymous caller apart from
    a signed-in caller without a role.
    """

    @staticmethod
    def required_role_for(action) -> Role:
        """Minimum role for an admin-domain action."""
        if Action(action) in OWNER_ONLY_ACTIONS:
            return Role.OWNER
        return Role.ADMIN

    @staticmethod
    def evaluate(role: Optional[Role], domain: Domain, authenticated: bool = True,
                 required_role: Optional[Role] = None) -> Decision:
        domain = Domain(domain)
        role = Role(role) if role else None

        if domain is Domain.PUBLIC:
            return ALLOW

        if domain is Domain.OPS:
            # Every ops denial looks like a missing page, never a 403.
            if not authenticated:
                return Decision(Outcome.NOT_FOUND, 'unauthenticated')
            if role is not Role.OPS:
                return Decision(Outcome.NOT_FOUND, 'not_ops_member')
            return ALLOW

        if not authenticated:
            return Decision(Outcome.LOGIN_REQUIRED, 'unauthenticated')

        if role is None:
            return Decision(Outcome.FORBIDDEN, 'no_role')

        if not role.is_tenant_role:
            return Decision(Outcome.FORBIDDEN, f'{role.value}_not_permitted_in_{domain.value}')

        minimum = DOMAIN_MINIMUM_ROLE[domain]
        if not role.at_least(minimum):
            return Decision(Outcome.FORBIDDEN, f'requires_{minimum.value}')

        if required_role is not None and not role.at_least(required_role):
            return Decision(Outcome.FORBIDDEN, f'requires_{Role(required_role).value}')

        return ALLOW

    @classmethod
    def evaluate_action(cls, role: Optional[Role], action, authenticated: bool = True) -> Decision:
        """Domain check for admin plus the action-level check layered on top."""
        return cls.evaluate(
            role,
            Domain.ADMIN,
            authenticated=authenticated,
            required_role=cls.required_role_for(action),
        )
