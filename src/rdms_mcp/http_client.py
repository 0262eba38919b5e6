"""HTTP fetch client carrying the session's cookies."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urljoin, urlparse

import requests

from rdms_mcp.constants import DEFAULT_REQUEST_TIMEOUT_SECONDS, DEFAULT_USER_AGENT
from rdms_mcp.exceptions import NetworkError, NetworkTimeout
from rdms_mcp.session import Session

logger = logging.getLogger(__name__)


@dataclass
class FetchResponse:
    """Raw response of one request."""

    url: str
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    content: bytes = b""
    encoding: str = "utf-8"

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding or "utf-8", errors="replace")

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "") or ""

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400


class FetchClient:
    """Issues GET/POST requests with the current cookie set.

    Cookies set by any response on the session's server (including
    intermediate redirects) are merged into the Session by name; the Session
    is the only cookie store. Requests to other hosts carry no cookies.
    """

    def __init__(
        self,
        session: Session,
        timeout: int = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        http: Optional[requests.Session] = None,
    ):
        """Initialize the fetch client.

        Args:
            session: Session whose cookies are sent and updated
            timeout: Per-request timeout in seconds
            user_agent: User-Agent header value
            http: Optional requests session (connection pooling)
        """
        self.session = session
        self.timeout = timeout
        self.http = http or requests.Session()
        self.http.headers.update({
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
        })

    def resolve(self, url: str) -> str:
        """Absolute URL for a path relative to the session's base URL."""
        if url.startswith(("http://", "https://")):
            return url
        return urljoin(self.session.base_url.rstrip("/") + "/", url.lstrip("/"))

    def get(self, url: str, allow_redirects: bool = True) -> FetchResponse:
        return self._request("GET", url, allow_redirects=allow_redirects)

    def post_form(
        self,
        url: str,
        data: Dict[str, str],
        referer: Optional[str] = None,
        allow_redirects: bool = False,
    ) -> FetchResponse:
        """POST form-encoded data.

        Redirects are not followed by default so callers can see them.
        """
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        if referer:
            headers["Referer"] = referer
        return self._request(
            "POST", url, data=data, headers=headers, allow_redirects=allow_redirects
        )

    def _request(self, method: str, url: str, **kwargs: Any) -> FetchResponse:
        url = self.resolve(url)
        cookies = dict(self.session.cookies) if self.is_session_host(url) else {}
        try:
            response = self.http.request(
                method,
                url,
                cookies=cookies,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.exceptions.Timeout as e:
            logger.warning(f"{method} {url} timed out after {self.timeout}s")
            raise NetworkTimeout(f"Request timeout after {self.timeout}s: {url}") from e
        except requests.exceptions.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise NetworkError(f"Connection error: {e}") from e

        self._store_cookies(response)
        logger.debug(f"{method} {url} -> {response.status_code} ({len(response.content)} bytes)")

        return FetchResponse(
            url=response.url or url,
            status_code=response.status_code,
            headers=response.headers,
            content=response.content,
            encoding=_response_encoding(response),
        )

    def is_session_host(self, url: str) -> bool:
        """Whether url has the same scheme and host as the session's server."""
        if not self.session.base_url:
            return False
        target = urlparse(url)
        base = urlparse(self.session.base_url)
        return (target.scheme.lower(), target.netloc.lower()) == (base.scheme.lower(), base.netloc.lower())

    def _store_cookies(self, response: requests.Response) -> None:
        for hop in list(response.history or []) + [response]:
            if hop.url and not self.is_session_host(hop.url):
                continue
            self.session.merge_cookies(hop.cookies.get_dict())
        # Keep requests' own jar empty so the Session stays authoritative
        self.http.cookies.clear()


def _response_encoding(response: requests.Response) -> str:
    """Declared charset, else UTF-8 (requests would guess ISO-8859-1 for text/html)."""
    content_type = response.headers.get("Content-Type", "") or ""
    if "charset=" in content_type.lower() and response.encoding:
        return response.encoding
    return "utf-8"
