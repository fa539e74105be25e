"""Operations (crawl, mirror, snapshot, rollback, watch)"""
from .crawler import Node, NodeKind, TreeCrawler, export_tree
from .mirror import MirrorEngine
from .result import SyncResult
from .rollback import RollbackCoordinator
from .snapshot import Snapshot, SnapshotManager
from .watcher import ChangeWatcher

__all__ = [
    "Node", "NodeKind", "TreeCrawler", "export_tree",
    "MirrorEngine",
    "SyncResult",
    "RollbackCoordinator",
    "Snapshot", "SnapshotManager",
    "ChangeWatcher",
]
