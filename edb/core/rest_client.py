"""
HTTP client for the eXist REST interface (list / read / write / create collection)
"""
import mimetypes
from typing import Optional

import requests

from ..errors import TransportError
from ..utils.logging import vlog
from .listing import Listing, parse_listing
from .paths import encode_path, normalize_remote_path

# MKCOL on an existing collection answers 405 (RFC 4918 §9.3.1)
_EXISTS_STATUSES = frozenset({405})


class RestClient:
    """
    Wraps a requests.Session with basic auth for every call.
    Failures surface as TransportError straight away; nothing is retried.
    """

    def __init__(self, server_url: str, user: str, password: str,
                 timeout: float = 30, session: Optional[requests.Session] = None):
        self.rest_base = server_url.rstrip("/") + "/rest"
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.auth = (user, password)

    @classmethod
    def from_settings(cls, settings) -> "RestClient":
        return cls(settings.server_url, settings.user, settings.password,
                   timeout=settings.timeout)

    # ── session ─────────────────────────────────────────────────────────────

    def close(self):
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def url_for(self, path: str) -> str:
        """Full request URL for a Remote Path (reserved characters encoded)."""
        return self.rest_base + encode_path(path)

    # ── raw request ─────────────────────────────────────────────────────────

    def _request(self, method: str, path: str, ok=(), **kw) -> requests.Response:
        url = self.url_for(path)
        vlog(f"  [http] {method} {url}")
        try:
            resp = self._session.request(method, url, timeout=self.timeout, **kw)
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}", url=url) from exc
        if resp.status_code in ok or 200 <= resp.status_code < 300:
            return resp
        if resp.status_code in (401, 403):
            raise TransportError(
                f"{method} {url}: authentication refused ({resp.status_code})",
                url=url, status=resp.status_code)
        raise TransportError(
            f"{method} {url} returned HTTP {resp.status_code}",
            url=url, status=resp.status_code)

    # ── tree operations ─────────────────────────────────────────────────────

    def list(self, path: str) -> Listing:
        """Fetch and parse the listing of a collection."""
        path = normalize_remote_path(path)
        resp = self._request("GET", path)
        try:
            return parse_listing(path, resp.content)
        except ValueError as exc:
            raise TransportError(str(exc), url=resp.url, status=resp.status_code) from exc

    def read(self, path: str) -> bytes:
        return self._request("GET", path).content

    def write(self, path: str, data: bytes):
        """PUT *data* at *path*, replacing whatever is stored there."""
        # Unknown types go without a Content-Type so the server's own
        # mime table decides (.xq, .xql, .xconf …)
        ctype = mimetypes.guess_type(path)[0]
        headers = {"Content-Type": ctype} if ctype else {}
        self._request("PUT", path, data=data, headers=headers)

    def ensure_container(self, path: str):
        """Create a collection; an existing one counts as success."""
        self._request("MKCOL", path, ok=_EXISTS_STATUSES)
