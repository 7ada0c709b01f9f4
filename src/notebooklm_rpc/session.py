"""Session context resolution for the NotebookLM data endpoints.

Every RPC must present the frontend build version (``bl``) and the session id
(``f.sid``) of the page it pretends to come from. The provider resolves them
once, caches the result and only re-resolves after ``invalidate()``.
"""

import logging
import re
import threading
from dataclasses import dataclass

import httpx

from . import constants
from .config import ClientConfig

logger = logging.getLogger("notebooklm_rpc.session")
logger.setLevel(logging.WARNING)

# Build version, e.g. "cfb2h":"boq_labs-tailwind-frontend_20251120.08_p0"
BUILD_VERSION_PATTERNS = (
    re.compile(r'"cfb2h":"(boq_labs-tailwind-frontend_[^"]+)"'),
    re.compile(r"""bl['":\s=]+['"]?(boq_labs-tailwind-frontend_[^'"&\s]+)"""),
)

# Session id, e.g. "FdrFJe":"-1234567890"
SESSION_ID_PATTERNS = (
    re.compile(r'"FdrFJe":"(-?\d+)"'),
    re.compile(r"""f\.sid['":\s=]+['"]?(-?\d+)"""),
)

SOURCE_OVERRIDE = "override"
SOURCE_PAGE = "page"
SOURCE_DEFAULT = "default"


@dataclass(frozen=True)
class SessionContext:
    """The dynamic parameters a client must present to be accepted."""

    build_version: str
    session_id: str
    source: str = SOURCE_DEFAULT


def cookie_header(cookies: str | dict[str, str] | None) -> str:
    """Get cookies as a header string."""
    if not cookies:
        return ""
    if isinstance(cookies, dict):
        return "; ".join(f"{k}={v}" for k, v in cookies.items())
    return cookies


def _search(patterns: tuple[re.Pattern, ...], html: str) -> str:
    for pattern in patterns:
        match = pattern.search(html)
        if match:
            return match.group(1)
    return ""


def extract_session_params(html: str) -> tuple[str, str]:
    """Extract (build_version, session_id) from the NotebookLM page.

    Each value is searched independently with a primary and a fallback
    pattern. A value that cannot be found is returned as an empty string.
    """
    return _search(BUILD_VERSION_PATTERNS, html), _search(SESSION_ID_PATTERNS, html)


class SessionContextProvider:
    """Resolves and caches the SessionContext.

    Construct one per process (or per account) and hand it to the Dispatcher.
    ``resolve`` and ``invalidate`` are the only mutators; both hold the same
    lock, so concurrent callers never fetch twice and always agree on the
    cached value.
    """

    def __init__(self, config: ClientConfig | None = None, http_client: httpx.Client | None = None):
        self.config = config or ClientConfig.from_env()
        # Only used for the page fetch; a temporary client is created otherwise
        self._http_client = http_client
        self._lock = threading.Lock()
        self._cached: SessionContext | None = None

    @property
    def cached(self) -> SessionContext | None:
        """The cached context, without triggering resolution."""
        with self._lock:
            return self._cached

    def resolve(self, cookies: str | dict[str, str] | None = None) -> SessionContext:
        """Return the cached context, resolving it first if necessary.

        Resolution order: explicit override (both values configured), then
        the NotebookLM home page fetched with ``cookies``, then the built-in
        defaults. Defaults also fill whichever single field the page lacks.
        """
        with self._lock:
            if self._cached is None:
                self._cached = self._resolve_uncached(cookie_header(cookies))
                logger.debug(
                    f"Resolved session context ({self._cached.source}) - "
                    f"bl: {self._cached.build_version[:50]}, f.sid: {self._cached.session_id}"
                )
            return self._cached

    def invalidate(self) -> None:
        """Drop the cached context so the next resolve redoes the full chain."""
        with self._lock:
            self._cached = None

    def _resolve_uncached(self, cookies: str) -> SessionContext:
        if self.config.has_session_override:
            return SessionContext(
                build_version=self.config.build_version,
                session_id=self.config.session_id,
                source=SOURCE_OVERRIDE,
            )

        if cookies:
            html = self._fetch_page(cookies)
            if html is not None:
                build_version, session_id = extract_session_params(html)
                if build_version or session_id:
                    return SessionContext(
                        build_version=build_version or constants.DEFAULT_BUILD_VERSION,
                        session_id=session_id or constants.DEFAULT_SESSION_ID,
                        source=SOURCE_PAGE,
                    )
                logger.warning("Session parameters not found in NotebookLM page; using defaults")

        return SessionContext(
            build_version=constants.DEFAULT_BUILD_VERSION,
            session_id=constants.DEFAULT_SESSION_ID,
            source=SOURCE_DEFAULT,
        )

    def _fetch_page(self, cookies: str) -> str | None:
        """GET the NotebookLM home page. Returns None if it cannot be used."""
        headers = {**constants.PAGE_FETCH_HEADERS, "Cookie": cookies}
        url = f"{constants.BASE_URL}/"

        try:
            if self._http_client is not None:
                response = self._http_client.get(url, headers=headers)
            else:
                with httpx.Client(follow_redirects=True, timeout=constants.PAGE_FETCH_TIMEOUT) as client:
                    response = client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch NotebookLM page: {e}")
            return None

        # Redirected to login: cookies expired
        if "accounts.google.com" in str(response.url):
            logger.warning("NotebookLM page redirected to login; cookies may be expired")
            return None

        if response.status_code != 200:
            logger.warning(f"Failed to fetch NotebookLM page: HTTP {response.status_code}")
            return None

        return response.text
