"""
Exception types raised and recorded by edb
"""
from typing import Optional


class EdbError(Exception):
    """Base class for every error edb raises on purpose."""


class ConfigError(EdbError):
    """Configuration file or value could not be used."""


class TransportError(EdbError):
    """The remote store could not be reached, refused the credentials,
    or answered a request with an unexpected status.

    Never retried: the failing listing/read/write is abandoned and the
    caller decides whether that aborts anything larger.
    """

    def __init__(self, message: str, url: Optional[str] = None,
                 status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status


class NotFoundError(EdbError):
    """A snapshot, backup root or local source does not exist."""

    def __init__(self, message: str, available: Optional[list] = None):
        super().__init__(message)
        self.available = list(available or [])


class BackupIncompleteError(EdbError):
    """The pre-import backup missed items and the profile demands a clean one."""


class PartialSyncWarning(EdbError, UserWarning):
    """One item of a best-effort pass failed; the pass itself went on."""

    def __init__(self, item: str, reason: str):
        super().__init__(f"{item}: {reason}")
        self.item = item
        self.reason = reason
