from __future__ import annotations

import logging
import re
from typing import Optional

from ..exceptions import ForbiddenError, UserNotFoundError, ValidationError
from ..models.rental import Rental
from ..models.store import Store
from ..models.user import Identity, User
from ..utils.constants import Role
from ..utils.security import generate_hash, check_hash
from .common import _store

logger = logging.getLogger(__name__)

# Compile once at module import
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{6,}$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{3,30}$")


class UserService:
    """Accounts (register/authenticate/activation) and per-user rental listings."""

    def __init__(self, store: Optional[Store] = None):
        self._store = store

    @property
    def store(self) -> Store:
        return self._store or _store()

    def register(self, username: str, password: str, role: str = Role.CUSTOMER,
                 *, allow_admin: bool = False) -> User:
        for value in (username, password, role):
            if value is not None and not isinstance(value, str):
                raise ValidationError("Username, password and role must be text.")
        username = (username or "").strip()
        role = (role or Role.CUSTOMER).strip().lower()
        allowed = Role.ALL if allow_admin else Role.SELF_SERVICE

        if not username or not password:
            raise ValidationError("Username and password are required.")
        if role not in allowed:
            raise ValidationError("Invalid role.")
        if not USERNAME_PATTERN.match(username):
            raise ValidationError("Username must be 3-30 chars (letters, digits, ., _, -).")
        if not PASSWORD_PATTERN.match(password):
            raise ValidationError(
                "Password must have at least 6 characters, including A-Z, a-z, and 0-9."
            )
        if password.lower() == username.lower():
            raise ValidationError("Password cannot be the same as username.")
        if self.store.user_exists(username):
            raise ValidationError("Username already exists.")

        uid = self.store.create_user(username, generate_hash(password), role)
        return User.from_dict(self.store.get_user(uid))

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """
        Return the user on valid credentials, None otherwise.
        Raises ForbiddenError for a deactivated account with valid credentials.
        """
        if not isinstance(username, str) or not isinstance(password, str):
            return None
        d = self.store.find_user(username.strip())
        if not d or not check_hash(password, d.get("password_hash")):
            return None
        user = User.from_dict(d)
        if not user.is_active:
            raise ForbiddenError("Error: this account has been deactivated")
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        return User.from_dict(self.store.get_user(user_id))

    # ---------- administration ----------
    def list_users(self, search: Optional[str] = None, role: Optional[str] = None) -> list[dict]:
        filters = {}
        if role in Role.ALL:
            filters["role"] = role
        rows = self.store.users_where(**filters)
        kw = (search or "").strip().lower() if isinstance(search, str) else ""
        if kw:
            rows = [u for u in rows if kw in (u.get("username") or "").lower()]
        rows.sort(key=lambda u: u.get("created_at") or "", reverse=True)
        return [User.from_dict(u).to_dict() for u in rows]

    def set_active(self, user_id: str, actor: Identity, is_active: bool) -> User:
        if not actor.is_admin:
            raise ForbiddenError("Error: only admins can change account status")
        user = self.get_user(user_id)
        if user is None:
            raise UserNotFoundError(f"Error: user '{user_id}' not found")
        if not is_active and user.role == Role.ADMIN:
            raise ForbiddenError("Error: cannot deactivate admin users")
        self.store.set_user_active(user.user_id, is_active)
        logger.info("User %s %s by %s", user.user_id,
                    "activated" if is_active else "deactivated", actor.user_id)
        return self.get_user(user.user_id)

    # ---------- rentals ----------
    def _with_titles(self, rows: list[dict]) -> list[dict]:
        out = []
        for r in rows:
            p = self.store.get_product(r.get("product_id")) or {}
            rental = Rental.from_dict(r)
            rental.product_title = p.get("title", "")
            out.append(rental.to_dict())
        # newest first
        out.sort(key=lambda x: x.get("created_at") or "", reverse=True)
        return out

    def rentals_for_renter(self, renter_id: str, status: Optional[str] = None) -> list[dict]:
        """Return this user's rentals (as renter) with product titles attached."""
        filters = {"renter_id": str(renter_id)}
        if status:
            filters["status"] = status.lower()
        return self._with_titles(self.store.rentals_where(**filters))

    def rentals_for_owner(self, owner_id: str, status: Optional[str] = None) -> list[dict]:
        """Return rentals of this user's listings with product titles attached."""
        filters = {"owner_id": str(owner_id)}
        if status:
            filters["status"] = status.lower()
        return self._with_titles(self.store.rentals_where(**filters))
