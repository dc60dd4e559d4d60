"""
Account use cases: registration, login, profile and password changes.

Tokens are stateless, so logout has nothing to revoke server-side; clients
drop the token. Emails are compared and stored lower-case.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

from scholaria.errors import AuthenticationError, InvalidInputError, NotFoundError

from .domain import normalize_email, normalize_role
from .passwords import hash_password, verify_password
from .tokens import TokenConfig, create_access_token

_log = logging.getLogger("scholaria.identity_access")

_UNSET = object()


class UserStoreProtocol(Protocol):
    """Subset of the teaching repository that account handling needs."""

    def create_user(self, *, name: str, email: str, password_hash: str, role: str): ...

    def get_user(self, user_id: str): ...

    def get_user_by_email(self, email: str): ...

    def update_user(self, user_id: str, **changes): ...


@dataclass
class AccountsService:
    users: UserStoreProtocol
    tokens: TokenConfig

    def _issue(self, user) -> str:
        return create_access_token(self.tokens, sub=user.id, role=user.role)

    def register(self, *, name: str, email: str, password: str, role: Optional[str] = None) -> Tuple[object, str]:
        normalized_role = normalize_role(role)
        user = self.users.create_user(
            name=name.strip(),
            email=normalize_email(email),
            password_hash=hash_password(password),
            role=normalized_role,
        )
        _log.info("Registered user %s as %s", user.id, user.role)
        return user, self._issue(user)

    def login(self, *, email: str, password: str) -> Tuple[object, str]:
        user = self.users.get_user_by_email(normalize_email(email))
        # Same error for unknown email and wrong password.
        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError("invalid_credentials")
        return user, self._issue(user)

    def me(self, user_id: str):
        user = self.users.get_user(user_id)
        if user is None:
            raise AuthenticationError("user_not_found")
        return user

    def update_profile(self, user_id: str, *, name: object = _UNSET, email: object = _UNSET):
        self.me(user_id)
        changes = {}
        if name is not _UNSET and name is not None:
            changes["name"] = str(name).strip()
        if email is not _UNSET and email is not None:
            changes["email"] = normalize_email(str(email))
        if not changes:
            return self.me(user_id)
        updated = self.users.update_user(user_id, **changes)
        if updated is None:
            raise NotFoundError("user_not_found")
        return updated

    def update_password(self, user_id: str, *, current_password: str, new_password: str) -> None:
        user = self.me(user_id)
        if not verify_password(current_password, user.password_hash):
            raise InvalidInputError("current_password_incorrect", field="currentPassword")
        self.users.update_user(user_id, password_hash=hash_password(new_password))
        _log.info("Password changed for user %s", user_id)


__all__ = ["AccountsService", "UserStoreProtocol"]
