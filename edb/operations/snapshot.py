"""
Timestamped backups of the remote collection, with retention rotation
"""
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from ..core.paths import ROOT_REL
from ..utils.logging import log, warn
from .crawler import export_tree
from .result import SyncResult

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


@dataclass
class Snapshot:
    app_name: str
    snapshot_id: str
    path: Path
    result: Optional[SyncResult] = None


class SnapshotManager:
    """
    Backups live in <backup_root>/<app_name>/<timestamp>, each one a full
    copy of the remote tree. Timestamp names sort chronologically.
    """

    def __init__(self, client, remote_root: str, backup_root,
                 clock: Callable[[], datetime] = datetime.now):
        self.client = client
        self.remote_root = remote_root
        self.backup_root = Path(backup_root)
        self.clock = clock

    def app_root(self, app_name: str) -> Path:
        return self.backup_root / app_name

    def list_snapshots(self, app_name: str) -> list:
        """Snapshot ids for *app_name*, oldest first."""
        root = self.app_root(app_name)
        if not root.is_dir():
            return []
        return sorted(p.name for p in root.iterdir() if p.is_dir())

    def snapshot(self, app_name: str, strict: bool = True) -> Snapshot:
        """
        Copy the remote tree into a new snapshot directory.

        Two snapshots within the same second share a directory; the later
        one simply overwrites the earlier.
        """
        ts = self.clock().strftime(TIMESTAMP_FORMAT)
        target = self.app_root(app_name) / ts
        log(f"[backup] 🛟 Creating backup of {self.remote_root} → {target}")
        result = export_tree(self.client, self.remote_root, target,
                             label="backup", strict=strict)
        log(f"[backup] ✔ BACKUP COMPLETE → {target}  ({result.summary()})")
        return Snapshot(app_name, ts, target, result)

    def rotate(self, app_name: str, keep: int) -> list:
        """Delete the oldest snapshots beyond *keep*; keep=0 keeps everything."""
        if keep <= 0:
            return []
        ids = self.list_snapshots(app_name)
        count = len(ids)
        if count <= keep:
            return []
        doomed = ids[:count - keep]
        log(f"[backup] 🧹 Rotating backups (keep={keep}, total={count})")
        for sid in doomed:
            path = self.app_root(app_name) / sid
            log(f"   rm -rf {path}")
            shutil.rmtree(path)
        return doomed

    def backup(self, app_name: str, keep: int, strict: bool = True) -> Snapshot:
        """
        Snapshot, then rotate. A snapshot whose root could not be listed
        captured nothing: its empty directory is removed and no older
        snapshot is rotated out for it.
        """
        snap = self.snapshot(app_name, strict=strict)
        if any(w.item == ROOT_REL for w in snap.result.failed):
            warn(f"[backup] remote root unreadable, keeping existing backups of '{app_name}'")
            if snap.path.is_dir() and not any(snap.path.iterdir()):
                snap.path.rmdir()
            return snap
        self.rotate(app_name, keep)
        return snap
