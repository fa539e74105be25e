"""
Orchestration of export, import, backup, rollback and watch
"""
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Optional

from ..config import Settings
from ..errors import BackupIncompleteError, NotFoundError
from ..operations.crawler import export_tree
from ..operations.mirror import MirrorEngine
from ..operations.rollback import LAST, RollbackCoordinator
from ..operations.snapshot import SnapshotManager
from ..operations.watcher import ChangeWatcher, watch
from ..utils.ignore_patterns import load_ignore_patterns
from ..utils.logging import log, warn
from .rest_client import RestClient


def _banner(title: str, *lines: str):
    print(f"\n{'=' * 64}")
    print(f"  {title}")
    for line in lines:
        print(f"  {line}")
    print(f"{'=' * 64}\n")


@contextmanager
def _client_for(settings: Settings, client=None):
    """Use *client* as given, or open (and later close) a RestClient."""
    if client is not None:
        yield client
        return
    with RestClient.from_settings(settings) as own:
        yield own


def _snapshots(settings: Settings, client, clock=None) -> SnapshotManager:
    return SnapshotManager(client, settings.collection, settings.backup_dir,
                           clock=clock or datetime.now)


def _mirror(settings: Settings, client, src) -> MirrorEngine:
    return MirrorEngine(client, settings.collection,
                        patterns=load_ignore_patterns(src), workers=settings.workers)


# ── export ───────────────────────────────────────────────────────────────────

def run_export(settings: Settings, client=None):
    """Remote collection → local_dir."""
    _banner("📥 Exporting via REST",
            f"Root:   {settings.collection}",
            f"Output: {settings.local_dir}")
    with _client_for(settings, client) as c:
        result = export_tree(c, settings.collection, settings.local_dir)
    log(f"[export] ✔ EXPORT COMPLETE → {settings.local_dir}  ({result.summary()})")
    return result


# ── backup ───────────────────────────────────────────────────────────────────

def run_backup(settings: Settings, client=None, clock: Optional[Callable] = None,
               strict: bool = True):
    """Snapshot the remote collection, then apply the retention policy."""
    _banner("🛟 Creating backup of remote collection",
            f"Remote:  {settings.collection}",
            f"Backups: {settings.backup_dir}")
    with _client_for(settings, client) as c:
        return _snapshots(settings, c, clock).backup(
            settings.app_name, settings.backup_keep, strict=strict)


def list_backups(settings: Settings) -> list:
    return SnapshotManager(None, settings.collection, settings.backup_dir).list_snapshots(
        settings.app_name)


# ── import ───────────────────────────────────────────────────────────────────

def run_import(settings: Settings, client=None, clock: Optional[Callable] = None):
    """
    local_dir → remote collection, always preceded by a backup.
    Returns (snapshot, result).
    """
    src = settings.local_dir
    _banner("📤 Importing to eXist",
            f"Source: {src}",
            f"Target: {settings.collection}")
    if not src.is_dir():
        raise NotFoundError(f"Local dir not found: {src}")

    with _client_for(settings, client) as c:
        log("[import] 🛟 Auto-backup → exporting remote collection before import …")
        snap = _snapshots(settings, c, clock).backup(
            settings.app_name, settings.backup_keep, strict=False)
        if not snap.result.ok:
            msg = (f"backup {snap.snapshot_id} is incomplete "
                   f"({len(snap.result.failed)} item(s) failed)")
            if settings.require_clean_backup:
                raise BackupIncompleteError(msg + "; import aborted before any write")
            warn(msg + "; proceeding with import anyway")
        log("[import] 🛟 Backup completed. Proceeding with import.")

        result = _mirror(settings, c, src).push(src, label="import")

    log(f"[import] ✔ IMPORT COMPLETE to {settings.collection}  ({result.summary()})")
    return snap, result


# ── rollback ─────────────────────────────────────────────────────────────────

def run_rollback(settings: Settings, selector: str = LAST, client=None):
    """Replay a stored snapshot onto the collection. Returns (snapshot_id, result)."""
    with _client_for(settings, client) as c:
        # a snapshot is restored as stored, so no .edbignore applies
        mirror = MirrorEngine(c, settings.collection, workers=settings.workers)
        coordinator = RollbackCoordinator(_snapshots(settings, c), mirror)
        sid, result = coordinator.rollback(settings.app_name, selector)
    log(f"[rollback] ✔ ROLLBACK COMPLETE from {sid}  ({result.summary()})")
    return sid, result


# ── watch ────────────────────────────────────────────────────────────────────

def run_watch(settings: Settings, client=None, stop_event=None):
    """Upload every changed file under local_dir until interrupted."""
    root = settings.local_dir
    if not root.is_dir():
        raise NotFoundError(f"Local dir not found: {root}")
    _banner("👀 Watch mode ON",
            f"Watching: {root}",
            f"Target:   {settings.collection}",
            "Every change to a file will be uploaded automatically.")
    with _client_for(settings, client) as c:
        watcher = ChangeWatcher(c, root, settings.collection,
                                patterns=load_ignore_patterns(root))
        return watch(watcher, stop_event=stop_event)
