"""Caller identity handed to the core by the external identity provider."""

from __future__ import annotations

from dataclasses import dataclass

from .core.enums import RoleName
from .core.exceptions import ForbiddenException


@dataclass(frozen=True)
class CallerPrincipal:
    """
    The authenticated caller for one request.

    The core trusts these values; credentials are verified upstream.
    """

    user_id: str
    role: RoleName

    @classmethod
    def of(cls, user_id: str, role: RoleName | str) -> "CallerPrincipal":
        return cls(user_id=user_id, role=RoleName(role))

    @property
    def is_client(self) -> bool:
        return self.role == RoleName.CLIENT


def require_role(actor: CallerPrincipal, *roles: RoleName) -> None:
    """Raise ForbiddenException unless the actor holds one of ``roles``."""
    if actor.role not in roles:
        allowed = ", ".join(role.value for role in roles)
        raise ForbiddenException(
            f"This action requires one of these roles: {allowed}",
            code="ROLE_REQUIRED",
            details={"required_roles": [role.value for role in roles], "role": actor.role.value},
        )
