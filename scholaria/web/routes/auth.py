"""
Authentication routes: registration, login, profile and password changes.

Why:
    Keep account endpoints in one router; token signing and password hashing
    live in `identity_access` so they can be tested without HTTP.

Notes:
    - Register and login are public (see the auth middleware in `main`); all
      other endpoints require a bearer token.
    - Tokens are stateless; logout only acknowledges so clients can discard
      the token.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field
from pydantic.functional_validators import field_validator

from scholaria.identity_access.accounts import AccountsService
from scholaria.identity_access.domain import ALLOWED_ROLES
from scholaria.teaching.services.populate import Populator

from .. import wiring
from ..auth_utils import current_actor
from ..responses import ok

auth_router = APIRouter(tags=["Auth"])
logger = logging.getLogger("scholaria.web.auth")

_EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


def _accounts() -> AccountsService:
    return AccountsService(users=wiring.get_repo(), tokens=wiring.get_token_config())


def _profile(user) -> dict:
    return Populator(wiring.get_repo()).profile(user)


def _non_blank_name(v: str) -> str:
    stripped = v.strip()
    if not stripped:
        raise ValueError("name must not be empty")
    return stripped


class RegisterPayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    email: str = Field(..., pattern=_EMAIL_PATTERN, max_length=254)
    password: str = Field(..., min_length=6, max_length=128)
    role: str | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        return _non_blank_name(v)

    @field_validator("role")
    @classmethod
    def _check_role(cls, v: str | None) -> str | None:
        if v is None:
            return None
        role = v.strip().lower()
        if role and role not in ALLOWED_ROLES:
            raise ValueError("role must be either student or lecturer")
        return role or None


class LoginPayload(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ProfileUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=50)
    email: str | None = Field(default=None, pattern=_EMAIL_PATTERN, max_length=254)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str | None) -> str | None:
        return _non_blank_name(v) if v is not None else None


class PasswordUpdatePayload(BaseModel):
    currentPassword: str = Field(..., min_length=1)
    newPassword: str = Field(..., min_length=6, max_length=128)


@auth_router.post("/auth/register")
async def register(payload: RegisterPayload):
    """Create an account and return it with a fresh token (201)."""
    user, token = _accounts().register(
        name=payload.name, email=payload.email, password=payload.password, role=payload.role
    )
    return ok({"user": _profile(user), "token": token}, message="User registered successfully", status_code=201)


@auth_router.post("/auth/login")
async def login(payload: LoginPayload):
    user, token = _accounts().login(email=payload.email, password=payload.password)
    return ok({"user": _profile(user), "token": token}, message="Login successful")


@auth_router.get("/auth/me")
async def me(request: Request):
    actor = current_actor(request)
    return ok(_profile(_accounts().me(actor.id)))


@auth_router.put("/auth/profile")
async def update_profile(request: Request, payload: ProfileUpdatePayload):
    actor = current_actor(request)
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    user = _accounts().update_profile(actor.id, **updates)
    return ok(_profile(user), message="Profile updated successfully")


@auth_router.put("/auth/password")
async def update_password(request: Request, payload: PasswordUpdatePayload):
    actor = current_actor(request)
    _accounts().update_password(
        actor.id, current_password=payload.currentPassword, new_password=payload.newPassword
    )
    return ok(None, message="Password updated successfully")


@auth_router.post("/auth/logout")
async def logout(request: Request):
    actor = current_actor(request)
    logger.info("User %s logged out", actor.id)
    return ok(None, message="Logged out successfully")
