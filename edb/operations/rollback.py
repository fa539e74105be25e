"""
Restore the remote collection from a stored snapshot
"""
from ..errors import NotFoundError
from ..utils.logging import log
from .mirror import MirrorEngine
from .snapshot import SnapshotManager

LAST = "last"


class RollbackCoordinator:
    """
    Picks a snapshot and replays it through the MirrorEngine.
    No backup is taken first: the target is a known-good state already.
    """

    def __init__(self, snapshots: SnapshotManager, mirror: MirrorEngine):
        self.snapshots = snapshots
        self.mirror = mirror

    def select(self, app_name: str, selector: str = LAST) -> str:
        """Resolve *selector* ('last' or a timestamp) to a snapshot id."""
        root = self.snapshots.app_root(app_name)
        if not root.is_dir():
            raise NotFoundError(f"No backups found for app '{app_name}' in {root}")
        ids = self.snapshots.list_snapshots(app_name)
        if not ids:
            raise NotFoundError(f"No backups found in {root}")

        if selector == LAST:
            return ids[-1]
        if selector in ids:
            return selector
        listing = "\n".join(f"  - {i}" for i in ids)
        raise NotFoundError(
            f"Requested backup timestamp '{selector}' not found.\n"
            f"Available backups:\n{listing}",
            available=ids,
        )

    def rollback(self, app_name: str, selector: str = LAST):
        """Returns (snapshot_id, SyncResult)."""
        sid = self.select(app_name, selector)
        path = self.snapshots.app_root(app_name) / sid
        log(f"[rollback] ⏪ Rolling back from backup: {path}")
        log(f"[rollback]    → collection: {self.mirror.remote_root}")
        result = self.mirror.push(path, label="rollback")
        return sid, result
