"""
Remote/relative path helpers shared by the client, crawler and mirror
"""
import re
from pathlib import PurePosixPath
from urllib.parse import quote

ROOT_REL = "."

_SLASHES = re.compile(r"/{2,}")


def normalize_remote_path(path: str) -> str:
    """Absolute, single-slashed, no trailing slash ('/' stays '/')."""
    p = _SLASHES.sub("/", "/" + str(path).strip())
    if len(p) > 1:
        p = p.rstrip("/")
    return p


def join_remote(parent: str, name: str) -> str:
    """Child path of *parent*; *name* may itself hold several segments."""
    parent = normalize_remote_path(parent)
    name = str(name).strip("/")
    if not name or name == ROOT_REL:
        return parent
    if parent == "/":
        return normalize_remote_path("/" + name)
    return normalize_remote_path(f"{parent}/{name}")


def segments(path: str) -> list:
    return [s for s in normalize_remote_path(path).split("/") if s]


def is_within(root: str, path: str) -> bool:
    """True if *path* is *root* or lies below it (segment-wise)."""
    r, p = segments(root), segments(path)
    return p[:len(r)] == r


def relative_to_root(root: str, path: str) -> str:
    """Strip *root* from a Remote Path; the root itself maps to '.'."""
    if not is_within(root, path):
        raise ValueError(f"{path!r} is not below {root!r}")
    rest = segments(path)[len(segments(root)):]
    return "/".join(rest) if rest else ROOT_REL


def remote_for_relative(root: str, rel: str) -> str:
    """Inverse of relative_to_root."""
    rel = PurePosixPath(str(rel).replace("\\", "/")).as_posix()
    return join_remote(root, rel)


def encode_path(path: str) -> str:
    """Percent-encode a Remote Path for use in a URL (spaces at least)."""
    return quote(normalize_remote_path(path), safe="/")
