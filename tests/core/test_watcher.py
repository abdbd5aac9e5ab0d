"""
Tests for the watch mode primitives

resync_loop() must finish one resync before starting the next and keep
going after a failed resync.
"""
import asyncio
import os

import pytest

from addon_toolchain.core.watcher import ChangeEvent, SourceWatcher, diff_snapshots, resync_loop, snapshot_tree


class TestSnapshots:
    """Test suite for snapshot_tree() / diff_snapshots()"""

    def test_diff_classifies_changes(self):
        before = {"a": (1.0, 1), "b": (1.0, 1), "c": (1.0, 1)}
        after = {"a": (1.0, 1), "b": (2.0, 1), "d": (1.0, 1)}

        event = diff_snapshots(before, after)

        assert event.added == ["d"]
        assert event.modified == ["b"]
        assert event.removed == ["c"]
        assert event

    def test_no_change_is_falsy(self):
        assert not diff_snapshots({"a": (1.0, 1)}, {"a": (1.0, 1)})

    def test_snapshot_missing_root(self, tmp_path):
        assert snapshot_tree(tmp_path / "missing") == {}

    def test_poll_once_detects_new_file(self, tmp_path):
        (tmp_path / "pack").mkdir()
        watcher = SourceWatcher(tmp_path)
        watcher._snapshot = snapshot_tree(tmp_path)

        assert watcher.poll_once() is None

        (tmp_path / "pack" / "new.json").write_text("{}")
        event = watcher.poll_once()

        assert event.added == [os.path.join("pack", "new.json")]
        assert watcher.poll_once() is None


class TestResyncLoop:
    """Test suite for resync_loop()"""

    @pytest.mark.asyncio
    async def test_resyncs_never_overlap(self):
        """Test that queued changes wait for the running resync"""
        queue = asyncio.Queue()
        timeline = []

        async def resync(event):
            timeline.append(("start", event.added[0]))
            await asyncio.sleep(0.02)
            timeline.append(("end", event.added[0]))

        for name in ("one", "two", "three"):
            queue.put_nowait(ChangeEvent(added=[name]))

        task = asyncio.create_task(resync_loop(queue, resync))
        await asyncio.wait_for(queue.join(), timeout=2)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert timeline == [
            ("start", "one"), ("end", "one"),
            ("start", "two"), ("end", "two"),
            ("start", "three"), ("end", "three"),
        ]

    @pytest.mark.asyncio
    async def test_failed_resync_keeps_watching(self):
        """Test that an error in one resync does not stop the loop"""
        queue = asyncio.Queue()
        handled = []

        async def resync(event):
            if event.added == ["bad"]:
                raise RuntimeError("build failed")
            handled.append(event.added[0])

        queue.put_nowait(ChangeEvent(added=["bad"]))
        queue.put_nowait(ChangeEvent(added=["good"]))

        task = asyncio.create_task(resync_loop(queue, resync))
        await asyncio.wait_for(queue.join(), timeout=2)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert handled == ["good"]

    @pytest.mark.asyncio
    async def test_watcher_posts_to_queue(self, tmp_path):
        """Test the polling thread hands events to the event loop"""
        watcher = SourceWatcher(tmp_path, poll_interval=0.01)
        queue = watcher.start()
        try:
            (tmp_path / "changed.txt").write_text("x")
            event = await asyncio.wait_for(queue.get(), timeout=2)
        finally:
            watcher.stop()

        assert "changed.txt" in event.paths


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
