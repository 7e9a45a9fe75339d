"""
Session login against the NSX manager.

The manager issues two artifacts from ``POST /api/session/create``:

- a session cookie (``Set-Cookie: JSESSIONID=...;``), replayed as ``Cookie``;
- an anti-forgery token (``X-XSRF-TOKEN``), replayed as the same header.

Both are stored together in an immutable :class:`Credentials` value that is
swapped in with a single assignment, so concurrent readers either see the old
pair or the new pair.  Writers are serialized by an ``asyncio.Lock``.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import httpx

from ..config import USER_AGENT
from ..errors import AuthError, InvalidInputError, TransportError
from ..utils.logging_utils import LogTimer

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/session/create"
XSRF_HEADER = "X-XSRF-TOKEN"
SET_COOKIE_HEADER = "Set-Cookie"

# First "[J]SESSIONID=<value>;" in a Set-Cookie value, trailing ";" included
SESSION_COOKIE_RE = re.compile(r"J?SESSIONID=[^;]*;")


def normalize_endpoint(endpoint: Optional[str], insecure: bool = False) -> Tuple[str, bool]:
    """
    Resolve the manager base URL and the TLS verification policy.

    Without a scheme, ``https://`` is assumed, or ``http://`` when
    ``insecure`` is set.  ``insecure`` always disables certificate
    verification.

    Returns:
        ``(base_url, verify)`` with any trailing ``/`` removed.

    Raises:
        InvalidInputError: empty, unparsable or non-http(s) endpoint.
    """
    raw = (endpoint or "").strip()
    if not raw:
        raise InvalidInputError("NSX endpoint must not be empty")

    if "://" not in raw:
        scheme = "http" if insecure else "https"
        logger.debug(f"No scheme in endpoint, using default {scheme} scheme")
        raw = f"{scheme}://{raw}"

    try:
        url = httpx.URL(raw)
    except httpx.InvalidURL as exc:
        raise InvalidInputError(f"Invalid NSX endpoint '{endpoint}': {exc}") from exc

    if url.scheme not in ("http", "https"):
        raise InvalidInputError(
            f"Invalid NSX endpoint '{endpoint}': scheme must be http or https"
        )
    if not url.host:
        raise InvalidInputError(f"Invalid NSX endpoint '{endpoint}': missing host")

    return str(url).rstrip("/"), not insecure


def match_header_values(items: Iterable[Tuple[str, str]], name: str) -> List[str]:
    """All values whose header name equals ``name`` case-insensitively, in order."""
    wanted = name.lower()
    return [value for key, value in items if key.lower() == wanted]


def match_header(items: Iterable[Tuple[str, str]], name: str) -> Optional[str]:
    """
    First value whose header name equals ``name`` case-insensitively.

    ``items`` is an ordered sequence of ``(name, value)`` pairs, e.g.
    ``httpx.Headers.multi_items()``.  Returns ``None`` when no header matches.
    """
    values = match_header_values(items, name)
    return values[0] if values else None


def extract_session_cookie(items: Iterable[Tuple[str, str]]) -> Optional[str]:
    """
    Session cookie from the ``Set-Cookie`` headers.

    ``Set-Cookie: SESSIONID=abc123; Path=/`` yields ``SESSIONID=abc123;``.
    The first Set-Cookie value carrying a session id wins.
    """
    for value in match_header_values(items, SET_COOKIE_HEADER):
        match = SESSION_COOKIE_RE.search(value)
        if match:
            return match.group(0)
    return None


@dataclass(frozen=True)
class Credentials:
    """Token and cookie pair issued by one login exchange."""

    xsrf_token: str = ""
    cookie: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.xsrf_token) and bool(self.cookie)


class Session:
    """
    Authenticated connection state for one NSX manager.

    Owns the ``httpx.AsyncClient`` used for every call.  Until
    :meth:`authenticate` obtains both token and cookie, ``credentials`` is
    ``None`` and requests go out without them.
    """

    def __init__(
        self,
        endpoint: str,
        insecure: bool = False,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url, self.verify = normalize_endpoint(endpoint, insecure)
        self.insecure = insecure
        if insecure:
            logger.debug("Insecure mode enabled. Skipping remote certificate verification")
        self.http = httpx.AsyncClient(
            base_url=self.base_url,
            verify=self.verify,
            timeout=timeout,
            transport=transport,
            headers={"User-Agent": USER_AGENT},
        )
        self.credentials: Optional[Credentials] = None
        self._lock = asyncio.Lock()

    @property
    def authenticated(self) -> bool:
        credentials = self.credentials
        return credentials is not None and credentials.is_complete

    @property
    def xsrf_token(self) -> str:
        credentials = self.credentials
        return credentials.xsrf_token if credentials else ""

    @property
    def cookie(self) -> str:
        credentials = self.credentials
        return credentials.cookie if credentials else ""

    async def authenticate(
        self,
        username: str,
        password: str,
        require_credentials: bool = False,
    ) -> "Session":
        """
        Log in and replace the stored credentials.

        Safe to call again to re-authenticate.  The previous credentials stay
        in place while the login is in flight and after a failed login.  A
        200 login without both token and cookie leaves the session
        unauthenticated.

        Args:
            username: NSX user.
            password: NSX password.
            require_credentials: Raise when a 200 login lacks the token or the
                cookie instead of degrading to unauthenticated calls.

        Raises:
            AuthError: non-200 login, or missing credentials in strict mode.
            TransportError: the login request could not be sent.
        """
        async with self._lock:
            data = {"j_username": username, "j_password": password}
            try:
                with LogTimer(logger, "NSX session login") as timer:
                    resp = await self.http.post(
                        LOGIN_PATH,
                        data=data,
                        headers={"Accept": "application/json"},
                    )
                    timer.set_status(resp.status_code)
            except httpx.HTTPError as exc:
                raise TransportError(
                    f"Session login request to {self.base_url} failed: {exc}"
                ) from exc

            if resp.status_code != 200:
                logger.debug(
                    f"Login responded with a non-200 status code: {resp.status_code}"
                )
                raise AuthError(resp.status_code)

            items = resp.headers.multi_items()
            credentials = Credentials(
                xsrf_token=match_header(items, XSRF_HEADER) or "",
                cookie=extract_session_cookie(items) or "",
            )

            if not credentials.is_complete:
                missing = " and ".join(
                    name for name, value in (
                        ("XSRF token", credentials.xsrf_token),
                        ("session cookie", credentials.cookie),
                    ) if not value
                )
                if require_credentials:
                    raise AuthError(
                        resp.status_code,
                        f"Session login returned no {missing}",
                    )
                logger.warning(
                    f"Session login returned no {missing}; "
                    "API calls will be unauthenticated"
                )
                self.credentials = None
                return self

            self.credentials = credentials
            logger.debug("Session login completed")
            return self

    async def aclose(self) -> None:
        await self.http.aclose()
