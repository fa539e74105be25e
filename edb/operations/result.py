"""
Outcome bookkeeping for best-effort crawl / mirror passes
"""
from dataclasses import dataclass, field

from ..errors import PartialSyncWarning
from ..utils.logging import warn


@dataclass
class SyncResult:
    """What a pass did: every item lands in exactly one of the lists."""
    containers: list = field(default_factory=list)
    resources: list = field(default_factory=list)
    skipped: list = field(default_factory=list)
    failed: list = field(default_factory=list)   # [PartialSyncWarning, …]

    @property
    def ok(self) -> bool:
        return not self.failed

    def fail(self, item: str, exc) -> PartialSyncWarning:
        """Record (and log) a per-item failure; the pass keeps going."""
        w = PartialSyncWarning(item, str(exc))
        self.failed.append(w)
        warn(f"{item} failed: {exc}")
        return w

    def merge(self, other: "SyncResult") -> "SyncResult":
        self.containers.extend(other.containers)
        self.resources.extend(other.resources)
        self.skipped.extend(other.skipped)
        self.failed.extend(other.failed)
        return self

    def summary(self) -> str:
        return (f"containers={len(self.containers)}  resources={len(self.resources)}  "
                f"skipped={len(self.skipped)}  failed={len(self.failed)}")
