"""Receipt files on local disk with HMAC-signed download URLs.

A signed URL has the form ``<base_url>/<path>?expires=<unix>&signature=<hex>``
where the signature is HMAC-SHA256 over ``<path>:<expires>``.
"""

import hashlib
import hmac
import re
import time
from pathlib import Path
from urllib.parse import quote

from app.export.exceptions import ExportError

_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9._-]")


class LocalFileStorage:
    """Stores files under ``files_root/<record_id>/<name>``."""

    def __init__(self, files_root: Path, *, secret: str, base_url: str = "/files") -> None:
        self._root = files_root
        self._secret = secret.encode("utf-8")
        self._base_url = base_url.rstrip("/")

    def write(self, record_id: str, name: str, payload: bytes) -> str:
        relative = f"{_safe_segment(record_id)}/{_safe_segment(name)}"
        target = self._root / relative
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(payload)
        except OSError as exc:
            raise ExportError(f"Failed to write {relative}: {exc}") from exc
        return relative

    def sign(self, path: str, ttl_seconds: int, *, now: float | None = None) -> str:
        expires = int((time.time() if now is None else now) + ttl_seconds)
        return (
            f"{self._base_url}/{quote(path)}"
            f"?expires={expires}&signature={self._signature(path, expires)}"
        )

    def _signature(self, path: str, expires: int) -> str:
        message = f"{path}:{expires}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()


def _safe_segment(value: str) -> str:
    cleaned = _UNSAFE_NAME_RE.sub("_", value).strip(".")
    if not cleaned:
        raise ExportError(f"Unusable storage name: {value!r}")
    return cleaned
