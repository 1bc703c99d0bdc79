import json
from pathlib import Path

from app.logging.logger import Log


class SessionCache:
    """In-memory key-value store scoped to one session.

    Survives moving records between pipeline stages but not a restart, unless
    the caller explicitly persists it with ``dump`` and ``load``.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def clear(self) -> None:
        self._values.clear()

    def keys(self, prefix: str = "") -> list[str]:
        return [key for key in self._values if key.startswith(prefix)]

    def __len__(self) -> int:
        return len(self._values)

    def dump(self, path: Path) -> None:
        """Write the cache contents to *path* as JSON."""
        path.write_text(json.dumps(self._values, ensure_ascii=False), encoding="utf-8")
        Log.debug(f"Session cache written: {len(self._values)} keys", path=path)

    @classmethod
    def load(cls, path: Path) -> "SessionCache":
        """Read a cache written by ``dump``. A missing file yields an empty cache."""
        if not path.exists():
            return cls()
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"Session cache file must hold a JSON object: {path}")
        return cls({str(key): str(value) for key, value in raw.items()})
