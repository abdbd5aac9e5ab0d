"""
Watcher - File change notifications for watch mode

Provides:
- SourceWatcher: polls the source tree on a background thread and posts
  ChangeEvents onto an asyncio.Queue owned by the main event loop
- resync_loop(): single consumer that runs one resync per event

A resync in flight is never interrupted. Changes detected meanwhile wait
in the queue and are handled once the current resync finishes.
"""
import asyncio
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

Snapshot = Dict[str, Tuple[float, int]]


class ChangeEvent(BaseModel):
    """Files that changed between two polls"""
    added: List[str] = Field(default_factory=list)
    modified: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)
    detected_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def paths(self) -> List[str]:
        return self.added + self.modified + self.removed

    def __bool__(self):
        return bool(self.added or self.modified or self.removed)


def snapshot_tree(root: Path) -> Snapshot:
    """Map every file under root to (mtime, size)"""
    snapshot: Snapshot = {}
    root = Path(root)
    if not root.is_dir():
        return snapshot
    for dirpath, _dirnames, filenames in os.walk(root):
        for filename in filenames:
            path = os.path.join(dirpath, filename)
            try:
                stat = os.stat(path)
            except FileNotFoundError:
                continue
            snapshot[os.path.relpath(path, root)] = (stat.st_mtime, stat.st_size)
    return snapshot


def diff_snapshots(before: Snapshot, after: Snapshot) -> ChangeEvent:
    return ChangeEvent(
        added=sorted(set(after) - set(before)),
        removed=sorted(set(before) - set(after)),
        modified=sorted(p for p in set(before) & set(after) if before[p] != after[p]),
    )


class SourceWatcher:
    """
    Polls a directory tree and queues a ChangeEvent per detected change

    The polling thread only hands events to the loop via
    call_soon_threadsafe; it never touches the queue directly.
    """

    def __init__(self, root: Path, poll_interval: float = 1.0):
        self.root = Path(root)
        self.poll_interval = poll_interval
        self.queue: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._snapshot: Snapshot = {}

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> asyncio.Queue:
        """Start polling; must be called from the loop that consumes the queue"""
        self._loop = loop or asyncio.get_running_loop()
        self.queue = asyncio.Queue()
        self._snapshot = snapshot_tree(self.root)
        self._stop.clear()
        self._thread = threading.Thread(target=self._poll, name="addon-source-watcher", daemon=True)
        self._thread.start()
        logger.info(f"[Watcher] Watching {self.root} (every {self.poll_interval}s)")
        return self.queue

    def stop(self):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.poll_interval * 2)
            self._thread = None

    def poll_once(self) -> Optional[ChangeEvent]:
        """Compare the tree with the last snapshot; returns the change, if any"""
        current = snapshot_tree(self.root)
        event = diff_snapshots(self._snapshot, current)
        self._snapshot = current
        return event if event else None

    def _poll(self):
        while not self._stop.wait(self.poll_interval):
            try:
                event = self.poll_once()
            except OSError as e:
                logger.warning(f"[Watcher] Poll failed: {e}")
                continue
            if event is not None:
                self._loop.call_soon_threadsafe(self.queue.put_nowait, event)


async def resync_loop(queue: asyncio.Queue, resync: Callable[[ChangeEvent], Awaitable[object]]):
    """
    Consume change events forever, one resync at a time

    A failed resync is logged and the loop waits for the next change.
    There is no stop condition; cancel the task or end the process.
    """
    while True:
        event = await queue.get()
        try:
            logger.info(f"[Watcher] File Changed ({len(event.paths)} paths)")
            await resync(event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[Watcher] Resync failed: {e}", exc_info=True)
        finally:
            queue.task_done()


__all__ = ["ChangeEvent", "SourceWatcher", "snapshot_tree", "diff_snapshots", "resync_loop"]
