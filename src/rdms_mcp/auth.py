"""
Session manager: login, expiry detection and transparent re-authentication.

Login flow:
    1. GET the login page and copy any hidden token fields from its form
    2. POST account/password/keepLogin plus those tokens, form-encoded
    3. classify the answer (see classify_login_response)

Every later page fetch goes through fetch_page(), which logs in again when the
session is not authenticated and flags the session as expired when the server
answers with the login page instead of the requested one.
"""
import logging
import threading
from typing import Dict, Optional

from rdms_mcp.config import ExtractionThresholds, default_thresholds
from rdms_mcp.constants import (
    CAPTCHA_PHRASES,
    INVALID_CREDENTIAL_PHRASES,
    LOGIN_ACCOUNT_FIELD,
    LOGIN_KEEP_FIELD,
    LOGIN_PAGE_MARKER,
    LOGIN_PASSWORD_FIELD,
    LOGIN_PATH,
    LOGIN_REDIRECT_SCRIPTS,
    LOGIN_TOKEN_FIELDS,
    REDIRECT_STATUS_CODES,
)
from rdms_mcp.exceptions import (
    CaptchaRequired,
    InvalidCredentials,
    NotAuthenticated,
    RDMSError,
    SessionExpired,
    UnknownLoginFailure,
)
from rdms_mcp.http_client import FetchClient, FetchResponse
from rdms_mcp.models import LoginResult
from rdms_mcp.parser import input_value, parse_html
from rdms_mcp.session import Session

logger = logging.getLogger(__name__)

# Final URLs that mean we were bounced to the login form
LOGIN_URL_MARKERS = ("m=user&f=login", "user-login")


def classify_login_response(
    status_code: int,
    body: str,
    thresholds: ExtractionThresholds = default_thresholds,
) -> None:
    """Raise the matching AuthError unless the login answer means success.

    Checked in order:
        1. a redirect status is success
        2. an "invalid credentials" phrase is InvalidCredentials
        3. a "verification code" phrase is CaptchaRequired
        4. a navigate-to-root script is success
        5. a body shorter than the stub threshold is success
    Anything else is UnknownLoginFailure.
    """
    if status_code in REDIRECT_STATUS_CODES:
        return
    body = body or ""
    if any(phrase in body for phrase in INVALID_CREDENTIAL_PHRASES):
        raise InvalidCredentials()
    if any(phrase.lower() in body.lower() for phrase in CAPTCHA_PHRASES):
        raise CaptchaRequired()
    if any(script in body for script in LOGIN_REDIRECT_SCRIPTS):
        return
    if len(body) < thresholds.login_stub_max_length:
        return
    raise UnknownLoginFailure()


def is_session_expired(
    response: FetchResponse,
    thresholds: ExtractionThresholds = default_thresholds,
) -> bool:
    """Whether a page answer is the login page instead of the requested page."""
    if any(marker in (response.url or "") for marker in LOGIN_URL_MARKERS):
        return True
    body = response.text
    return LOGIN_PAGE_MARKER in body and len(body) < thresholds.session_expiry_max_length


def login_form_data(login_page_html: str, username: str, password: str) -> Dict[str, str]:
    """Form fields for the login POST, including hidden tokens from the page."""
    data = {
        LOGIN_ACCOUNT_FIELD: username,
        LOGIN_PASSWORD_FIELD: password,
        LOGIN_KEEP_FIELD: "1",
    }
    document = parse_html(login_page_html)
    for name in LOGIN_TOKEN_FIELDS:
        value = input_value(document, name)
        if value:
            data[name] = value
    return data


class SessionManager:
    """Keeps one Session logged in."""

    def __init__(
        self,
        session: Session,
        fetch: FetchClient,
        thresholds: Optional[ExtractionThresholds] = None,
    ):
        """Initialize the session manager.

        Args:
            session: Session to authenticate (may carry configured credentials)
            fetch: Fetch client bound to the same session
            thresholds: Login/expiry heuristics thresholds
        """
        self.session = session
        self.fetch = fetch
        self.thresholds = thresholds or default_thresholds
        self._login_lock = threading.Lock()

    def login(
        self,
        base_url: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> LoginResult:
        """Log in, falling back to the session's stored credentials.

        A failed attempt against another server leaves the session on its
        previous server and credentials.

        Returns:
            LoginResult; failures carry the AuthError/NetworkError code
        """
        base_url = (base_url or self.session.base_url or "").rstrip("/")
        username = username or self.session.username
        password = password or self.session.password

        if not (base_url and username and password):
            return LoginResult(False, "Missing login credentials", NotAuthenticated.code)

        previous_url = self.session.base_url
        previous_cookies = dict(self.session.cookies)
        try:
            self._authenticate(base_url, username, password)
        except RDMSError as e:
            # Stored credentials must keep pointing at the server they belong to
            if self.session.base_url != previous_url:
                self.session.base_url = previous_url
                self.session.cookies = previous_cookies
            self.session.invalidate()
            logger.warning(f"Login to {base_url} as {username} failed: {e.message}")
            return LoginResult(False, e.message, e.code)

        self.session.username = username
        self.session.password = password
        self.session.authenticated = True
        logger.info(f"Logged in to {base_url} as {username}")
        return LoginResult(True, f"Successfully logged in to RDMS system at {base_url}")

    def _authenticate(self, base_url: str, username: str, password: str) -> None:
        self.session.switch_server(base_url)
        login_url = self.fetch.resolve(LOGIN_PATH)

        page = self.fetch.get(login_url)
        data = login_form_data(page.text, username, password)

        response = self.fetch.post_form(login_url, data, referer=login_url)
        classify_login_response(response.status_code, response.text, self.thresholds)

    def ensure_authenticated(self) -> None:
        """Log in again if needed; raise NotAuthenticated if that fails.

        Concurrent callers share one login attempt.
        """
        if self.session.authenticated:
            return

        with self._login_lock:
            if self.session.authenticated:
                return
            reason = "Not logged in. Please configure environment variables or use rdms_login tool."
            if self.session.has_credentials:
                logger.info(f"Session not authenticated, logging in to {self.session.base_url}")
                result = self.login()
                if not result.success:
                    reason = f"{reason} Auto-login failed: {result.message}"
            if not self.session.authenticated:
                raise NotAuthenticated(reason)

    def check_page(self, response: FetchResponse) -> None:
        """Flag the session as expired when the page is the login page."""
        if is_session_expired(response, self.thresholds):
            logger.warning(f"Session expired while fetching {response.url}")
            self.session.invalidate()
            raise SessionExpired()

    def fetch_page(self, url: str) -> FetchResponse:
        """GET a page under an authenticated session."""
        self.ensure_authenticated()
        response = self.fetch.get(url)
        self.check_page(response)
        return response
