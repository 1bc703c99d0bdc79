import pytest

from app.pipeline.exceptions import ResourceError
from app.resources.tracker import ResourceTracker


class TestCreate:
    def test_returns_blob_handle(self, tracker: ResourceTracker) -> None:
        handle = tracker.create(b"data", "image/png")
        assert handle.startswith("blob:")
        assert tracker.is_live(handle)

    def test_handles_are_unique(self, tracker: ResourceTracker) -> None:
        handles = {tracker.create(b"x") for _ in range(10)}
        assert len(handles) == 10
        assert tracker.tracked_count == 10

    def test_read_and_content_type(self, tracker: ResourceTracker) -> None:
        handle = tracker.create(b"payload", "application/pdf")
        assert tracker.read(handle) == b"payload"
        assert tracker.content_type(handle) == "application/pdf"

    def test_quota_exceeded_raises(self) -> None:
        tracker = ResourceTracker(max_bytes=5)
        tracker.create(b"1234")
        with pytest.raises(ResourceError, match="quota"):
            tracker.create(b"56")
        assert tracker.total_bytes == 4


class TestRelease:
    def test_release_invalidates_handle(self, tracker: ResourceTracker) -> None:
        handle = tracker.create(b"data")
        tracker.release(handle)
        assert not tracker.is_live(handle)
        with pytest.raises(ResourceError, match="not live"):
            tracker.read(handle)

    def test_release_is_idempotent(self, tracker: ResourceTracker) -> None:
        handle = tracker.create(b"data")
        tracker.release(handle)
        tracker.release(handle)
        tracker.release("blob:unknown")
        assert tracker.tracked_count == 0
        assert tracker.total_bytes == 0

    def test_release_many(self, tracker: ResourceTracker) -> None:
        keep = tracker.create(b"keep")
        drop = [tracker.create(b"a"), tracker.create(b"b")]
        tracker.release_many(drop)
        assert tracker.tracked_count == 1
        assert tracker.is_live(keep)

    def test_release_all(self, tracker: ResourceTracker) -> None:
        handles = [tracker.create(b"a"), tracker.create(b"bb")]
        tracker.release_all()
        assert tracker.tracked_count == 0
        assert tracker.total_bytes == 0
        assert not any(tracker.is_live(h) for h in handles)

    def test_context_exit_releases_everything(self) -> None:
        with ResourceTracker() as tracker:
            handle = tracker.create(b"data")
            assert tracker.is_live(handle)
        assert tracker.tracked_count == 0

    def test_context_exit_releases_on_error(self) -> None:
        tracker = ResourceTracker()
        with pytest.raises(RuntimeError):
            with tracker:
                tracker.create(b"data")
                raise RuntimeError("teardown")
        assert tracker.tracked_count == 0
