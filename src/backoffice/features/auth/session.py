"""Request-scoped session context handed to every service call.

Handlers never look up the authenticated user on their own; they receive a
SessionContext from the `get_session` dependency and pass it down, so every
query can be scoped to the session owner.
"""
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends

from .models import User
from .security import get_current_active_user


@dataclass(frozen=True)
class SessionContext:
    user: User

    @property
    def owner_id(self) -> int:
        return self.user.id

    @property
    def username(self) -> str:
        return self.user.username


async def get_session(
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> SessionContext:
    return SessionContext(user=current_user)


Session = Annotated[SessionContext, Depends(get_session)]
