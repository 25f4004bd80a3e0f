"""User registration and actor resolution."""

from uuid import uuid4

import pytest

from ledger_kernel.domain.actor import Capability, Role, RolePolicy
from ledger_kernel.exceptions import UnknownActorError
from ledger_kernel.services.user_service import UserService


def test_register_normalizes_email(user_service):
    info = user_service.register_user("Dana", "  Dana@Example.COM ", "accountant")

    assert info.email == "dana@example.com"
    assert info.role == Role.ACCOUNTANT
    assert info.is_active


def test_resolve_actor_capabilities(user_service):
    info = user_service.register_user("Erin", "erin@example.com", Role.ADMIN)

    actor = user_service.resolve_actor(info.id)

    assert actor.user_id == info.id
    assert actor.has(Capability.FIRST_APPROVER)
    assert not actor.has(Capability.SECOND_APPROVER)


def test_unknown_user(user_service):
    with pytest.raises(UnknownActorError):
        user_service.resolve_actor(uuid4())


def test_inactive_user_cannot_act(user_service, admin):
    info = user_service.register_user("Finn", "finn@example.com")
    user_service.deactivate_user(info.id, admin)

    assert not user_service.get_user(info.id).is_active
    with pytest.raises(UnknownActorError):
        user_service.resolve_actor(info.id)


def test_unknown_role(user_service):
    with pytest.raises(ValueError):
        user_service.register_user("Gus", "gus@example.com", "auditor")


def test_custom_role_policy(session, clock):
    policy = RolePolicy(grants={Role.USER: frozenset({Capability.SECOND_APPROVER})})
    service = UserService(session, clock, role_policy=policy)
    info = service.register_user("Hana", "hana@example.com", Role.USER)

    actor = service.resolve_actor(info.id)

    assert actor.capabilities == frozenset({Capability.SECOND_APPROVER})
