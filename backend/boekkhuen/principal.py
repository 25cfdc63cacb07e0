from __future__ import annotations

from dataclasses import dataclass

from .models.users import ROLE_ADMIN


@dataclass(frozen=True)
class Principal:
    """
    Who is acting, passed explicitly into every service call.

    Built by the route layer from the authenticated request; the services
    never look at request globals.
    """
    user_id: int
    role: str
    price_tier: str | None = None
    request_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @classmethod
    def from_user(cls, user, request_id: str | None = None) -> "Principal":
        return cls(user_id=user.id, role=user.role, price_tier=user.price_tier, request_id=request_id)
