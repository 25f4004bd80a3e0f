"""
Actor -- explicit identity and capability set for every core operation.

Responsibility:
    Carries the acting user's id, role and resolved capabilities into the
    journal validator, the purchase-order state machine and the write
    services.  Authorization is decided from this value alone; the kernel
    never consults an ambient "current user".

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Actors are resolved from the ``users`` table by UserService at the
    boundary and then passed by value.

Failure modes:
    - UnauthorizedActorError from Actor.require() when a capability is
      missing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping
from uuid import UUID

from ledger_kernel.exceptions import UnauthorizedActorError


class Role(str, Enum):
    ADMIN = "admin"
    ACCOUNTANT = "accountant"
    USER = "user"


class Capability(str, Enum):
    """Permissions granted to roles."""

    EDIT_LEDGER = "edit_ledger"
    CREATE_PURCHASE_ORDER = "create_purchase_order"
    FIRST_APPROVER = "first_approver"
    SECOND_APPROVER = "second_approver"


@dataclass(frozen=True)
class RolePolicy:
    """
    Immutable role -> capability table.

    Roles missing from the table have no capabilities.
    """

    grants: Mapping[Role, frozenset[Capability]]

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "grants",
            MappingProxyType(
                {Role(role): frozenset(caps) for role, caps in self.grants.items()}
            ),
        )

    def capabilities_for(self, role: Role | str) -> frozenset[Capability]:
        return self.grants.get(Role(role), frozenset())


DEFAULT_ROLE_POLICY = RolePolicy(
    grants={
        Role.ADMIN: frozenset({
            Capability.EDIT_LEDGER,
            Capability.CREATE_PURCHASE_ORDER,
            Capability.FIRST_APPROVER,
        }),
        Role.ACCOUNTANT: frozenset({
            Capability.EDIT_LEDGER,
            Capability.CREATE_PURCHASE_ORDER,
            Capability.SECOND_APPROVER,
        }),
        Role.USER: frozenset({
            Capability.CREATE_PURCHASE_ORDER,
        }),
    }
)


@dataclass(frozen=True)
class Actor:
    """
    The user on whose behalf an operation runs.

    Contract:
        capabilities is the complete set the actor holds; it is resolved
        once at the boundary from role and RolePolicy.
    """

    user_id: UUID
    role: Role
    capabilities: frozenset[Capability] = field(default_factory=frozenset)

    @classmethod
    def for_role(
        cls,
        user_id: UUID,
        role: Role | str,
        policy: RolePolicy = DEFAULT_ROLE_POLICY,
    ) -> Actor:
        role = Role(role)
        return cls(user_id=user_id, role=role, capabilities=policy.capabilities_for(role))

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def require(self, capability: Capability, operation: str) -> None:
        """Raise UnauthorizedActorError unless the actor holds ``capability``."""
        if capability not in self.capabilities:
            raise UnauthorizedActorError(
                actor_id=str(self.user_id),
                capability=capability.value,
                operation=operation,
            )


@dataclass(frozen=True)
class UserInfo:
    id: UUID
    name: str
    email: str
    role: Role
    is_active: bool = True
