"""
Upload single changed files as file-system notifications arrive
"""
import threading
import time
from pathlib import Path
from typing import Iterable, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from ..core.paths import ROOT_REL, remote_for_relative
from ..errors import EdbError
from ..utils.ignore_patterns import is_ignored
from ..utils.logging import log, vlog
from .result import SyncResult


class ChangeWatcher:
    """
    Turns one changed local path into one PUT. Paths outside the watched
    root, ignored paths and non-files are skipped. A failed upload is
    recorded and the next notification is handled as usual.
    """

    def __init__(self, client, local_root, remote_root: str, patterns: list = ()):
        self.client = client
        self.local_root = Path(local_root).resolve()
        self.remote_root = remote_root
        self.patterns = list(patterns)
        self.result = SyncResult()

    def relative(self, path) -> Optional[str]:
        """Relative path below the watched root, or None if outside it."""
        full = Path(path).resolve()
        try:
            rel = full.relative_to(self.local_root).as_posix()
        except ValueError:
            return None
        return None if rel in ("", ROOT_REL) else rel

    def handle(self, path) -> Optional[bool]:
        """True = uploaded, False = upload failed, None = skipped."""
        rel = self.relative(path)
        if rel is None:
            vlog(f"  [watch] outside {self.local_root}: {path}")
            return None
        if is_ignored(rel, self.patterns):
            vlog(f"  [watch] ignored: {rel}")
            self.result.skipped.append(rel)
            return None
        full = self.local_root / rel
        if not full.is_file():
            return None

        log(f"🔁 change detected → {rel} (uploading)")
        try:
            self.client.write(remote_for_relative(self.remote_root, rel), full.read_bytes())
        except (EdbError, OSError) as exc:
            self.result.fail(rel, exc)
            return False
        self.result.resources.append(rel)
        log("   ✔ uploaded")
        return True

    def run(self, events: Iterable) -> SyncResult:
        """Handle every path of *events* in arrival order."""
        for path in events:
            self.handle(path)
        return self.result


class _UploadHandler(FileSystemEventHandler):
    """watchdog bridge: every created/modified/moved-to file goes to handle()."""

    def __init__(self, watcher: ChangeWatcher):
        self.watcher = watcher

    def on_created(self, event):
        if not event.is_directory:
            self.watcher.handle(event.src_path)

    def on_modified(self, event):
        if not event.is_directory:
            self.watcher.handle(event.src_path)

    def on_moved(self, event):
        if not event.is_directory:
            self.watcher.handle(event.dest_path)


def watch(watcher: ChangeWatcher, stop_event: Optional[threading.Event] = None,
          poll: float = 0.5):
    """
    Block until Ctrl+C (or *stop_event*), uploading changes under the root.
    The observer delivers events from one thread, so two notifications for
    the same path are applied in the order they arrived.
    """
    observer = Observer()
    observer.schedule(_UploadHandler(watcher), str(watcher.local_root), recursive=True)
    stop_event = stop_event or threading.Event()

    log(f"[watch] 👀 Watching {watcher.local_root} (Ctrl+C to stop)")
    observer.start()
    try:
        while not stop_event.is_set():
            time.sleep(poll)
    except KeyboardInterrupt:
        log("[watch] Stopping …")
    finally:
        observer.stop()
        observer.join(timeout=10)
    return watcher.result
