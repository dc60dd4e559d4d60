"""
Process-wide wiring of the repository, storage adapter and token settings.

Why:
    Routes resolve their collaborators through the accessors below instead of
    importing singletons, so tests can swap implementations (`set_repo`,
    `set_storage_adapter`, `set_token_config`) without touching the app.

Behavior:
    - The repository prefers MongoDB when `MONGO_URI` is set and the server
      answers a ping; otherwise it degrades to the in-memory store and logs a
      warning. Construction is lazy so importing the app never hits the DB.
    - Storage writes to `UPLOAD_DIR` via `LocalFileStorage`.
"""
from __future__ import annotations

import logging
from typing import Optional

from scholaria.identity_access.tokens import TokenConfig
from scholaria.teaching.ports import TeachingRepoProtocol
from scholaria.teaching.repo_memory import InMemoryTeachingRepo
from scholaria.teaching.services.materials import MaterialFileSettings
from scholaria.teaching.storage import LocalFileStorage, StorageAdapterProtocol

from .config import Settings, get_settings

logger = logging.getLogger("scholaria.web")

_REPO: Optional[TeachingRepoProtocol] = None
_STORAGE: Optional[StorageAdapterProtocol] = None
_TOKENS: Optional[TokenConfig] = None
_SETTINGS: Optional[Settings] = None


def settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = get_settings()
    return _SETTINGS


def _build_default_repo(cfg: Settings) -> TeachingRepoProtocol:
    """Prefer the Mongo-backed repo; fall back to in-memory if unavailable."""
    if not cfg.mongo_uri:
        logger.warning("MONGO_URI not set; using in-memory teaching repo")
        return InMemoryTeachingRepo()
    try:
        from scholaria.teaching.repo_mongo import MongoTeachingRepo

        repo = MongoTeachingRepo(cfg.mongo_uri, cfg.mongo_db)
        repo.ping()
        repo.ensure_indexes()
    except Exception as exc:  # pragma: no cover - exercised when MongoDB is down
        logger.warning("Teaching repo unavailable (%s); using in-memory fallback", exc.__class__.__name__)
        return InMemoryTeachingRepo()
    logger.info("Teaching repo wired: MongoDB database %s", cfg.mongo_db)
    return repo


def get_repo() -> TeachingRepoProtocol:
    global _REPO
    if _REPO is None:
        _REPO = _build_default_repo(settings())
    return _REPO


def set_repo(repo: TeachingRepoProtocol) -> None:
    """Allow tests to swap the teaching repository implementation."""
    global _REPO
    _REPO = repo


def get_storage() -> StorageAdapterProtocol:
    global _STORAGE
    if _STORAGE is None:
        _STORAGE = LocalFileStorage(settings().upload_dir)
    return _STORAGE


def set_storage_adapter(adapter: StorageAdapterProtocol) -> None:
    """Allow tests to provide a storage adapter (e.g. a temporary directory)."""
    global _STORAGE
    _STORAGE = adapter


def get_token_config() -> TokenConfig:
    global _TOKENS
    if _TOKENS is None:
        cfg = settings()
        _TOKENS = TokenConfig(secret=cfg.jwt_secret, expire_minutes=cfg.jwt_expire_minutes)
    return _TOKENS


def set_token_config(config: TokenConfig) -> None:
    global _TOKENS
    _TOKENS = config


def material_file_settings() -> MaterialFileSettings:
    return MaterialFileSettings(max_size_bytes=settings().max_file_size)


__all__ = [
    "settings",
    "get_repo",
    "set_repo",
    "get_storage",
    "set_storage_adapter",
    "get_token_config",
    "set_token_config",
    "material_file_settings",
]
