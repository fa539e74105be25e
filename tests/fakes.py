"""
In-memory stand-in for the eXist REST client, shared by the tests
"""
from edb.core.listing import Listing
from edb.core.paths import normalize_remote_path, relative_to_root, segments
from edb.errors import TransportError


def _parent(path: str) -> str:
    return path.rsplit("/", 1)[0] or "/"


class FakeStore:
    """
    Collections and resources keyed by Remote Path. Like the real server,
    a write or MKCOL whose parent collection is missing fails (409).
    Every call is appended to ``calls`` as (operation, path).
    """

    def __init__(self, root: str = "/db/apps/demo"):
        self.root = normalize_remote_path(root)
        self.containers = set()
        self.resources = {}
        self.calls = []
        self.fail_paths = set()
        self.listings = {}   # path → Listing served instead of the real one
        parts = segments(self.root)
        for i in range(len(parts) + 1):
            self.containers.add("/" + "/".join(parts[:i]))

    # ── fixtures ────────────────────────────────────────────────────────────

    def add(self, rel: str, data: bytes):
        path = normalize_remote_path(f"{self.root}/{rel}")
        parent = _parent(path)
        while parent not in self.containers:
            self.containers.add(parent)
            parent = _parent(parent)
        self.resources[path] = data

    def tree(self) -> dict:
        """{relative path: bytes} of every resource below the root."""
        return {relative_to_root(self.root, p): d for p, d in self.resources.items()}

    def first(self, op: str) -> int:
        return next(i for i, (o, _) in enumerate(self.calls) if o == op)

    def last(self, op: str) -> int:
        return max(i for i, (o, _) in enumerate(self.calls) if o == op)

    # ── client protocol ─────────────────────────────────────────────────────

    def _enter(self, op: str, path: str) -> str:
        path = normalize_remote_path(path)
        self.calls.append((op, path))
        if path in self.fail_paths:
            raise TransportError(f"{op} {path}: connection reset", url=path)
        return path

    def list(self, path):
        path = self._enter("list", path)
        if path in self.listings:
            return self.listings[path]
        if path not in self.containers:
            raise TransportError(f"{path} not found", url=path, status=404)
        containers = sorted(c.rsplit("/", 1)[-1] for c in self.containers
                            if c != path and _parent(c) == path)
        resources = sorted(r.rsplit("/", 1)[-1] for r in self.resources
                           if _parent(r) == path)
        return Listing(path, containers, resources)

    def read(self, path):
        path = self._enter("read", path)
        if path not in self.resources:
            raise TransportError(f"{path} not found", url=path, status=404)
        return self.resources[path]

    def write(self, path, data):
        path = self._enter("write", path)
        if _parent(path) not in self.containers:
            raise TransportError(f"parent of {path} missing", url=path, status=409)
        self.resources[path] = bytes(data)

    def ensure_container(self, path):
        path = self._enter("ensure_container", path)
        if path in self.containers:
            return
        if _parent(path) not in self.containers:
            raise TransportError(f"parent of {path} missing", url=path, status=409)
        self.containers.add(path)
