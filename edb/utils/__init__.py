"""Utilities (logging, ignore patterns)"""
from .logging import log, vlog, warn, error, set_verbose
from .ignore_patterns import load_ignore_patterns, is_ignored

__all__ = [
    "log", "vlog", "warn", "error", "set_verbose",
    "load_ignore_patterns", "is_ignored",
]
