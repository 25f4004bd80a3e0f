"""
UserService -- user registration and actor resolution.

Responsibility:
    Registers users with a role and resolves a user id into an Actor
    (role plus capability set) at the boundary.  Every other service takes
    that Actor as an explicit parameter.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Failure modes:
    - UnknownActorError for a missing or inactive user.
    - ValueError for an unknown role name.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.base import SYSTEM_ACTOR_ID
from ledger_kernel.db.engine import translate_store_errors
from ledger_kernel.domain.actor import (
    DEFAULT_ROLE_POLICY,
    Actor,
    Role,
    RolePolicy,
    UserInfo,
)
from ledger_kernel.domain.clock import Clock
from ledger_kernel.exceptions import UnknownActorError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.user import User
from ledger_kernel.services.base import BaseService

logger = get_logger("services.user")


def _to_info(user: User) -> UserInfo:
    return UserInfo(
        id=user.id,
        name=user.name,
        email=user.email,
        role=Role(user.role),
        is_active=user.is_active,
    )


class UserService(BaseService[User]):
    """Users and their capabilities."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        role_policy: RolePolicy = DEFAULT_ROLE_POLICY,
    ):
        super().__init__(session, clock)
        self._role_policy = role_policy

    @translate_store_errors
    def register_user(
        self,
        name: str,
        email: str,
        role: Role | str = Role.USER,
        created_by: UUID = SYSTEM_ACTOR_ID,
    ) -> UserInfo:
        role = Role(role)
        user = User(
            name=name,
            email=email.strip().lower(),
            role=role.value,
            created_by_id=created_by,
        )
        self.session.add(user)
        self.session.flush()
        logger.info(
            "user_registered",
            extra={"user_id": str(user.id), "role": role.value},
        )
        return _to_info(user)

    @translate_store_errors
    def get_user(self, user_id: UUID) -> UserInfo:
        user = self.session.get(User, user_id)
        if user is None:
            raise UnknownActorError(str(user_id))
        return _to_info(user)

    def resolve_actor(self, user_id: UUID) -> Actor:
        """
        Resolve a user id into an Actor with its capability set.

        Raises:
            UnknownActorError: No such user, or the user is inactive.
        """
        user = self.get_user(user_id)
        if not user.is_active:
            raise UnknownActorError(str(user_id))
        return Actor.for_role(user.id, user.role, self._role_policy)

    @translate_store_errors
    def deactivate_user(self, user_id: UUID, actor: Actor) -> UserInfo:
        user = self.session.get(User, user_id)
        if user is None:
            raise UnknownActorError(str(user_id))
        user.is_active = False
        user.updated_by_id = actor.user_id
        self.session.flush()
        logger.info("user_deactivated", extra={"user_id": str(user_id)})
        return _to_info(user)
