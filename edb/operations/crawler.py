"""
Recursive discovery of a remote collection tree, and export to local disk
"""
import enum
from pathlib import Path
from typing import Iterator, NamedTuple

from ..core.paths import (ROOT_REL, join_remote, normalize_remote_path,
                          relative_to_root, segments)
from ..errors import EdbError, NotFoundError, TransportError
from ..utils.logging import log, vlog, warn
from .result import SyncResult


class NodeKind(enum.Enum):
    CONTAINER = "container"
    RESOURCE = "resource"


class Node(NamedTuple):
    rel_path: str
    kind: NodeKind
    remote_path: str

    @property
    def is_container(self) -> bool:
        return self.kind is NodeKind.CONTAINER


def join_rel(rel: str, name: str) -> str:
    return name if rel == ROOT_REL else f"{rel}/{name}"


def _bad_name(name: str) -> bool:
    return not name or name in (".", "..") or "/" in name or "\\" in name


def _contains_run(haystack: list, needle: list) -> bool:
    n = len(needle)
    return any(haystack[i:i + n] == needle for i in range(len(haystack) - n + 1))


class TreeCrawler:
    """
    Depth-first walk of the tree below *root*.

    For every collection the resources are yielded first, then each
    sub-collection is yielded and descended into. The root itself is not
    yielded. Listing failures below the root are recorded on ``result``
    and that branch is dropped; everything else carries on.
    """

    def __init__(self, client, root: str):
        self.client = client
        self.root = normalize_remote_path(root)
        self.result = SyncResult()

    def walk(self, strict: bool = False) -> Iterator[Node]:
        """
        Start a fresh crawl (``result`` is reset).

        With *strict*, failing to list the root itself raises instead of
        being recorded: NotFoundError for a missing collection,
        TransportError otherwise.
        """
        self.result = SyncResult()
        if strict:
            try:
                listing = self.client.list(self.root)
            except TransportError as exc:
                if exc.status == 404:
                    raise NotFoundError(f"Remote collection not found: {self.root}") from exc
                raise
            return self._walk(self.root, ROOT_REL, (self.root,), listing)
        return self._walk(self.root, ROOT_REL, (self.root,))

    def loop_reason(self, child: str, name: str, ancestors: tuple):
        """Why descending into *child* would loop, or None if it is safe."""
        if _bad_name(name):
            return f"invalid collection name {name!r}"
        if child in ancestors:
            return "revisits an ancestor collection"
        root_segs = segments(self.root)
        if root_segs and _contains_run(segments(child)[len(root_segs):], root_segs):
            return "path re-enters the crawl root"
        return None

    def _walk(self, path: str, rel: str, ancestors: tuple,
              listing=None) -> Iterator[Node]:
        if listing is None:
            try:
                listing = self.client.list(path)
            except EdbError as exc:
                self.result.fail(rel, exc)
                return

        for name in listing.resources:
            if _bad_name(name):
                warn(f"[crawl] skipping resource with invalid name {name!r} in {path}")
                self.result.skipped.append(f"{path}/{name}")
                continue
            yield Node(join_rel(rel, name), NodeKind.RESOURCE, join_remote(path, name))

        for name in listing.containers:
            child = join_remote(path, name) if not _bad_name(name) else f"{path}/{name}"
            reason = self.loop_reason(child, name, ancestors)
            if reason:
                warn(f"[crawl] STOP LOOP → {child} ({reason})")
                self.result.skipped.append(child)
                continue
            child_rel = join_rel(rel, name)
            vlog(f"  [crawl] 📂 {child_rel}")
            yield Node(child_rel, NodeKind.CONTAINER, child)
            yield from self._walk(child, child_rel, ancestors + (child,))


def export_tree(client, root: str, dest, label: str = "export",
                strict: bool = True) -> SyncResult:
    """
    Materialize the remote tree below *root* into the local directory *dest*.
    Existing local files are overwritten; nothing local is deleted.
    """
    crawler = TreeCrawler(client, root)
    nodes = crawler.walk(strict=strict)
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    result = SyncResult()

    for node in nodes:
        target = dest.joinpath(*node.rel_path.split("/"))
        try:
            if node.is_container:
                target.mkdir(parents=True, exist_ok=True)
                result.containers.append(node.rel_path)
            else:
                data = client.read(node.remote_path)
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(data)
                result.resources.append(node.rel_path)
                log(f"  ⬇ [{label}] {node.rel_path}")
        except (EdbError, OSError) as exc:
            result.fail(node.rel_path, exc)

    return result.merge(crawler.result)
