"""
Session state for one logged-in RDMS client.

A Session holds the server root, the credentials that last logged in
successfully, the cookie set and the authenticated flag. It is owned by one
client instance; independent clients get independent sessions.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Cookies and login state for one server."""

    base_url: str = ""
    username: str = ""
    password: str = ""
    cookies: Dict[str, str] = field(default_factory=dict)
    authenticated: bool = False

    @property
    def has_credentials(self) -> bool:
        return bool(self.base_url and self.username and self.password)

    def merge_cookies(self, cookies: Dict[str, str]) -> None:
        """Union new cookies into the set, overwriting by name."""
        for name, value in cookies.items():
            name = (name or "").strip()
            if name and value is not None:
                self.cookies[name] = str(value).strip()

    def switch_server(self, base_url: str) -> None:
        """Point the session at a different server, dropping its cookies."""
        base_url = base_url.rstrip("/")
        if base_url != self.base_url:
            if self.base_url:
                logger.info(f"Switching session from {self.base_url} to {base_url}")
            self.cookies.clear()
            self.authenticated = False
            self.base_url = base_url

    def invalidate(self) -> None:
        """Mark the session as logged out; cookies are kept for the next login."""
        self.authenticated = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize without the password."""
        return {
            "base_url": self.base_url,
            "username": self.username,
            "cookies": dict(self.cookies),
            "authenticated": self.authenticated,
        }
