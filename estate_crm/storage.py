"""Filesystem object store for uploaded files.

Layout:
  <storage_dir>/<bucket>/<name>

Objects are served read-only by the app under ``/storage/``.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path


class StorageError(Exception):
    pass


_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def _check_part(value: str) -> str:
    part = (value or "").strip()
    if not _NAME_RE.match(part) or ".." in part:
        raise StorageError(f"invalid object name: {value!r}")
    return part


class ObjectStore:
    """Bucketed file store with atomic writes."""

    def __init__(self, root_dir: str | Path, url_prefix: str = "/storage"):
        self.root_dir = Path(root_dir)
        self.url_prefix = url_prefix.rstrip("/")

    def path_for(self, bucket: str, name: str) -> Path:
        return self.root_dir / _check_part(bucket) / _check_part(name)

    def public_url(self, bucket: str, name: str) -> str:
        return f"{self.url_prefix}/{_check_part(bucket)}/{_check_part(name)}"

    def name_from_url(self, url: str) -> str:
        return (url or "").rstrip("/").rsplit("/", 1)[-1]

    def put_bytes_atomic(self, bucket: str, name: str, data: bytes) -> Path:
        """Write bytes using a temp file and an atomic rename (upsert)."""
        dest = self.path_for(bucket, name)
        dest.parent.mkdir(parents=True, exist_ok=True)

        fd = None
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=f"{dest.name}.tmp.", dir=str(dest.parent))
            with os.fdopen(fd, "wb") as f:
                fd = None
                f.write(data or b"")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, dest)
            tmp_path = None
        finally:
            if fd is not None:
                os.close(fd)
            if tmp_path is not None:
                Path(tmp_path).unlink(missing_ok=True)
        return dest

    def remove(self, bucket: str, name: str) -> bool:
        try:
            path = self.path_for(bucket, name)
        except StorageError:
            return False
        if not path.is_file():
            return False
        path.unlink()
        return True
