"""
Replay a local directory tree onto the remote store (collections first, then files)
"""
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterator, Optional

from ..core.paths import ROOT_REL, remote_for_relative
from ..errors import EdbError, NotFoundError
from ..utils.ignore_patterns import is_ignored
from ..utils.logging import log, vlog
from .result import SyncResult


def _rel(src: Path, p: Path) -> str:
    rel = p.relative_to(src).as_posix()
    return rel if rel else ROOT_REL


class MirrorEngine:
    """
    Best-effort local → remote overwrite.

    Phase 1 ensures a collection for every local directory (root included),
    phase 2 uploads every regular file. Phase 2 never starts before phase 1
    has finished, so each upload's parent collection has been attempted.
    Individual failures are recorded on the returned SyncResult.
    """

    def __init__(self, client, remote_root: str, patterns: list = (), workers: int = 1):
        self.client = client
        self.remote_root = remote_root
        self.patterns = list(patterns)
        self.workers = max(1, int(workers))

    # ── enumeration ─────────────────────────────────────────────────────────

    def _walk(self, src: Path, onerror=None):
        for dirpath, dirnames, filenames in os.walk(src, onerror=onerror):
            here = Path(dirpath)
            # prune in place so os.walk never descends into ignored dirs
            dirnames[:] = sorted(
                d for d in dirnames
                if not is_ignored(_rel(src, here / d), self.patterns, is_dir=True)
            )
            yield here, sorted(filenames)

    def iter_directories(self, src, result: Optional[SyncResult] = None) -> Iterator[tuple]:
        """
        Yield (rel_path, Path) for every kept directory, root first.
        A directory that cannot be read is recorded on *result* and its
        subtree is left out.
        """
        src = Path(src)

        def unreadable(exc: OSError):
            if result is not None:
                result.fail(_rel(src, Path(exc.filename)) if exc.filename else ROOT_REL, exc)

        for here, _ in self._walk(src, onerror=unreadable):
            yield _rel(src, here), here

    def iter_files(self, src) -> Iterator[tuple]:
        """Yield (rel_path, Path) for every regular, non-ignored file."""
        src = Path(src)
        for here, filenames in self._walk(src):
            for name in filenames:
                p = here / name
                rel = _rel(src, p)
                if not p.is_file() or is_ignored(rel, self.patterns):
                    continue
                yield rel, p

    # ── sync ────────────────────────────────────────────────────────────────

    def push(self, src, label: str = "import") -> SyncResult:
        src = Path(src)
        if not src.is_dir():
            raise NotFoundError(f"Source dir not found: {src}")

        result = SyncResult()

        log(f"[{label}] 📂 Creating collections from: {src}")
        for rel, _ in self.iter_directories(src, result):
            remote = remote_for_relative(self.remote_root, rel)
            try:
                self.client.ensure_container(remote)
                result.containers.append(rel)
                vlog(f"  MKCOL {remote}")
            except EdbError as exc:
                result.fail(rel, exc)

        log(f"[{label}] ⬆ Uploading files (overwrite enabled) …")
        files = self.iter_files(src)
        if self.workers == 1:
            for rel, path in files:
                self._upload(rel, path, result)
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                for fut in [pool.submit(self._upload, rel, path, result)
                            for rel, path in files]:
                    fut.result()

        return result

    def _upload(self, rel: str, path: Path, result: SyncResult):
        try:
            self.client.write(remote_for_relative(self.remote_root, rel),
                              path.read_bytes())
        except (EdbError, OSError) as exc:
            result.fail(rel, exc)
            return
        result.resources.append(rel)
        log(f"  PUT {rel}")
