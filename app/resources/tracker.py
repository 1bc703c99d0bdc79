"""Ownership registry for in-memory binary resources.

Every page image, PDF and thumbnail produced during a session lives here and
is referenced elsewhere only through an opaque ``blob:<uuid>`` handle. The
tracker is the only component that invalidates handles.
"""

import uuid
from dataclasses import dataclass
from types import TracebackType

from app.logging.logger import Log
from app.pipeline.exceptions import ResourceError

_HANDLE_PREFIX = "blob:"


@dataclass(frozen=True)
class _Resource:
    data: bytes
    content_type: str


class ResourceTracker:
    """Session-scoped registry of live resource handles."""

    def __init__(self, max_bytes: int | None = None) -> None:
        self._resources: dict[str, _Resource] = {}
        self._max_bytes = max_bytes
        self._total_bytes = 0

    def __enter__(self) -> "ResourceTracker":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release_all()

    @property
    def tracked_count(self) -> int:
        return len(self._resources)

    @property
    def total_bytes(self) -> int:
        return self._total_bytes

    def create(self, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Register *data* and return a new handle.

        Raises:
            ResourceError: if the tracker's byte quota would be exceeded.
        """
        if self._max_bytes is not None and self._total_bytes + len(data) > self._max_bytes:
            raise ResourceError(
                f"Resource quota exceeded: {self._total_bytes + len(data)} > {self._max_bytes} bytes"
            )
        handle = f"{_HANDLE_PREFIX}{uuid.uuid4()}"
        self._resources[handle] = _Resource(data=data, content_type=content_type)
        self._total_bytes += len(data)
        return handle

    def read(self, handle: str) -> bytes:
        return self._lookup(handle).data

    def content_type(self, handle: str) -> str:
        return self._lookup(handle).content_type

    def is_live(self, handle: str) -> bool:
        return handle in self._resources

    def release(self, handle: str) -> None:
        """Invalidate one handle. Unknown or already released handles are ignored."""
        resource = self._resources.pop(handle, None)
        if resource is not None:
            self._total_bytes -= len(resource.data)

    def release_many(self, handles: list[str]) -> None:
        for handle in handles:
            self.release(handle)

    def release_all(self) -> None:
        count = len(self._resources)
        self._resources.clear()
        self._total_bytes = 0
        if count:
            Log.debug(f"Released {count} tracked resources")

    def _lookup(self, handle: str) -> _Resource:
        resource = self._resources.get(handle)
        if resource is None:
            raise ResourceError(f"Handle is not live: {handle}")
        return resource
