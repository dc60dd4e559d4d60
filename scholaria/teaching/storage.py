"""
Storage adapters for uploaded course materials.

Why:
    Services talk to a small protocol instead of the filesystem so tests can
    inject a temporary directory and deployments can swap the backend. The
    upload root is handed to `LocalFileStorage` at construction; nothing here
    reads module-level paths.

Conventions:
    - Stored names: `<fieldname>-<epoch ms>-<random>.<ext>` (see
      `make_stored_name`). Keys are flat file names, never paths.
    - `save` streams in chunks and enforces the size limit; a rejected upload
      leaves no partial file behind.
    - `delete` is best-effort: a missing file is not an error.
"""
from __future__ import annotations

import logging
import os
import random
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterator, Optional, Protocol

from scholaria.errors import PayloadTooLargeError

_log = logging.getLogger("scholaria.storage")

CHUNK_SIZE = 64 * 1024
_FIELD_RE = re.compile(r"[^A-Za-z0-9_-]+")


def _sanitize_ext_from_filename(filename: str | None) -> str:
    if not filename:
        return ""
    _, ext = os.path.splitext(os.path.basename(filename))
    ext = (ext or "").lower()
    # keep only alnum and dots; collapse invalids
    ext = "".join(ch for ch in ext if ch.isalnum() or ch == ".")
    if ext and not ext.startswith("."):
        ext = f".{ext}"
    return ext if ext != "." else ""


def make_stored_name(fieldname: str, filename: str | None, *, epoch_ms: int | None = None, rand: int | None = None) -> str:
    """Build a collision-resistant stored name for an upload.

    Returns: `<fieldname>-<epoch ms>-<random 0..1e9>.<original ext>`
    """
    field = _FIELD_RE.sub("-", fieldname or "").strip("-") or "file"
    stamp = int(time.time() * 1000) if epoch_ms is None else int(epoch_ms)
    suffix = random.randint(0, 10**9) if rand is None else int(rand)
    return f"{field}-{stamp}-{suffix}{_sanitize_ext_from_filename(filename)}"


class StorageAdapterProtocol(Protocol):
    """Protocol describing the storage adapter used for file materials."""

    def save(self, key: str, source: BinaryIO, *, max_bytes: int) -> int: ...

    def exists(self, key: str) -> bool: ...

    def stat(self, key: str) -> Optional[Dict[str, Any]]: ...

    def open_stream(self, key: str, *, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]: ...

    def delete(self, key: str) -> bool: ...


class LocalFileStorage:
    """Keep uploads as flat files under an injected root directory."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        name = os.path.basename(key or "")
        if not name or name != key or name in (".", ".."):
            raise ValueError("invalid_storage_key")
        return self.root / name

    def save(self, key: str, source: BinaryIO, *, max_bytes: int) -> int:
        target = self._path(key)
        written = 0
        try:
            with open(target, "wb") as out:
                while True:
                    chunk = source.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > max_bytes:
                        raise PayloadTooLargeError("file_too_large", field="file")
                    out.write(chunk)
        except BaseException:
            target.unlink(missing_ok=True)
            raise
        return written

    def exists(self, key: str) -> bool:
        try:
            return self._path(key).is_file()
        except ValueError:
            return False

    def stat(self, key: str) -> Optional[Dict[str, Any]]:
        if not self.exists(key):
            return None
        st = self._path(key).stat()
        return {
            "size": st.st_size,
            "modified_at": datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        }

    def open_stream(self, key: str, *, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundError(key)
        handle = open(path, "rb")

        def _iterate() -> Iterator[bytes]:
            with handle:
                while True:
                    chunk = handle.read(chunk_size)
                    if not chunk:
                        break
                    yield chunk

        return _iterate()

    def delete(self, key: str) -> bool:
        try:
            path = self._path(key)
        except ValueError:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            _log.warning("Could not remove stored file %s: %s", key, exc.__class__.__name__)
            return False
        return True


__all__ = ["StorageAdapterProtocol", "LocalFileStorage", "make_stored_name", "CHUNK_SIZE"]
