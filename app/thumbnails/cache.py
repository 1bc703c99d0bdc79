import base64
import binascii

from app.logging.logger import Log
from app.records.models import RasterImage
from app.session.cache import SessionCache

_KEY_PREFIX = "thumbnail_"
_DATA_URL_PREFIX = "data:image/jpeg;base64,"


class ThumbnailCache:
    """Thumbnails keyed by record id, stored as JPEG data URLs in the session cache."""

    def __init__(self, cache: SessionCache) -> None:
        self._cache = cache

    def cache(self, record_id: str, thumbnail: RasterImage) -> None:
        encoded = base64.b64encode(thumbnail.data).decode("ascii")
        self._cache.set(self._key(record_id), f"{_DATA_URL_PREFIX}{encoded}")

    def get(self, record_id: str) -> bytes | None:
        value = self._cache.get(self._key(record_id))
        if value is None:
            return None
        try:
            return base64.b64decode(value.split(",", 1)[-1], validate=True)
        except (binascii.Error, ValueError) as exc:
            Log.warning(f"Discarding unreadable cached thumbnail: {exc}", record_id=record_id)
            self.clear(record_id)
            return None

    def has(self, record_id: str) -> bool:
        return self._cache.get(self._key(record_id)) is not None

    def clear(self, record_id: str) -> None:
        self._cache.remove(self._key(record_id))

    def clear_all(self) -> None:
        for key in self._cache.keys(_KEY_PREFIX):
            self._cache.remove(key)

    @staticmethod
    def _key(record_id: str) -> str:
        return f"{_KEY_PREFIX}{record_id}"
