"""
Ignore rules: the fixed metadata set plus optional .edbignore patterns
"""
import re
from pathlib import Path

IGNORE_FILE = ".edbignore"

# Version-control, editor and OS metadata never leave the local tree
IGNORED_DIRS = frozenset({".git", ".idea"})
IGNORED_NAMES = frozenset({".DS_Store"})


def _compile_pattern(raw: str):
    """Compile an .edbignore pattern into a regex"""
    p = raw.strip()
    if not p or p.startswith("#"):
        return None
    escaped = re.escape(p)
    escaped = escaped.replace(r"\*\*", "§DS§")
    escaped = escaped.replace(r"\*", "[^/]*")
    escaped = escaped.replace(r"\?", "[^/]")
    escaped = escaped.replace("§DS§", ".*")
    if escaped.startswith("/"):
        escaped = "^" + escaped[1:]
    else:
        escaped = r"(^|.*\/)" + escaped
    try:
        return re.compile(escaped + r"(/.*)?$")
    except re.error:
        return None


def load_ignore_patterns(root: Path) -> list:
    """Load ignore patterns from the .edbignore file in *root*, if any"""
    f = Path(root) / IGNORE_FILE
    if not f.is_file():
        return []
    patterns = []
    for line in f.read_text(encoding="utf-8", errors="replace").splitlines():
        c = _compile_pattern(line)
        if c:
            patterns.append(c)
    return patterns


def is_fixed_ignored(rel_path: str, is_dir: bool = False) -> bool:
    """True for paths inside the built-in ignore set."""
    parts = [p for p in rel_path.replace("\\", "/").split("/") if p and p != "."]
    if not parts:
        return False
    if any(p in IGNORED_DIRS for p in parts[:-1]):
        return True
    if is_dir:
        return parts[-1] in IGNORED_DIRS
    return parts[-1] in IGNORED_NAMES or parts[-1] == IGNORE_FILE


def is_ignored(rel_path: str, patterns: list = (), is_dir: bool = False) -> bool:
    """Check a relative path against the fixed set and the loaded patterns"""
    if is_fixed_ignored(rel_path, is_dir=is_dir):
        return True
    norm = rel_path.replace("\\", "/")
    return any(p.search(norm) for p in patterns)
