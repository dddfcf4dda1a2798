from dataclasses import dataclass
from typing import Optional

from ..utils.constants import Role


@dataclass
class User:
    """Registered account. The password hash never leaves the store."""
    user_id: str
    username: str
    role: str  # "customer" | "vendor" | "admin"
    is_active: bool = True

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> Optional["User"]:
        if not d:
            return None
        return cls(
            user_id=str(d.get("user_id")),
            username=d.get("username") or "",
            role=(d.get("role") or Role.CUSTOMER).lower(),
            is_active=bool(d.get("is_active", True)),
        )

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "role": self.role,
            "is_active": self.is_active,
        }

    def identity(self) -> "Identity":
        return Identity(user_id=self.user_id, role=self.role)


@dataclass(frozen=True)
class Identity:
    """Who is making a request: resolved from the session by the HTTP layer."""
    user_id: str
    role: str = Role.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
