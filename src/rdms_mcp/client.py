"""
RDMS client: the operations exposed to the tool host.

Each record/list operation checks the session once, fetches its page, runs one
parse/extract pass and returns a plain dictionary. Authentication, network
and parse failures come back as ``{"error": ..., "code": ...}`` replies so the
dispatch loop always has something well-formed to send.
"""
import logging
from typing import Any, Dict, Optional

import requests

from rdms_mcp.auth import SessionManager
from rdms_mcp.config import Config, ExtractionThresholds
from rdms_mcp.constants import (
    BUG_VIEW_PATH,
    DEFAULT_RESULT_CAP,
    MARKET_BUG_VIEW_PATH,
    MY_BUGS_LABEL,
    MY_BUGS_PATH,
    MY_MARKET_BUGS_LABEL,
    MY_MARKET_BUGS_PATH,
)
from rdms_mcp.exceptions import RDMSError
from rdms_mcp.extractor import FieldExtractor
from rdms_mcp.http_client import FetchClient
from rdms_mcp.images import ImageRetriever
from rdms_mcp.list_extractor import ListExtractor
from rdms_mcp.models import ImagePayload
from rdms_mcp.profiles import ProfileSet
from rdms_mcp.session import Session

logger = logging.getLogger(__name__)

EXTRACTION_ERROR = "ExtractionError"
INVALID_ARGUMENT = "InvalidArgument"


class RDMSClient:
    """Scraping client for one RDMS (Zentao) server."""

    def __init__(
        self,
        config: Optional[Config] = None,
        thresholds: Optional[ExtractionThresholds] = None,
        profiles: Optional[ProfileSet] = None,
        http: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            config: Client configuration (defaults to Config.from_env())
            thresholds: Login/expiry heuristics thresholds (defaults to the
                configured thresholds file, else RDMS_THRESHOLD_* variables)
            profiles: Record profiles and list layouts (defaults to built-ins
                plus the configured profile file)
            http: Optional requests session to send requests through
        """
        self.config = config or Config.from_env()
        self.session = Session(
            base_url=self.config.base_url.rstrip("/"),
            username=self.config.username,
            password=self.config.password,
        )
        self.fetch = FetchClient(
            self.session,
            timeout=self.config.timeout,
            user_agent=self.config.user_agent,
            http=http,
        )
        self.thresholds = thresholds or load_thresholds(self.config)
        self.manager = SessionManager(self.session, self.fetch, self.thresholds)
        self.images = ImageRetriever(self.manager, self.fetch)
        self.profiles = profiles or ProfileSet.from_yaml(self.config.profile_file)

    @property
    def base_url(self) -> str:
        return self.session.base_url

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    def login(
        self,
        base_url: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Log in explicitly; returns ``{success, message}`` or ``{success, error, code}``."""
        return self.manager.login(base_url, username, password).to_dict()

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def get_bug(self, bug_id: str) -> Dict[str, Any]:
        """Bug details, including image URLs and history."""
        return self._get_record("bug", BUG_VIEW_PATH, bug_id)

    def get_market_bug(self, market_bug_id: str) -> Dict[str, Any]:
        """Market bug details, including image URLs and history."""
        return self._get_record("market_bug", MARKET_BUG_VIEW_PATH, market_bug_id)

    def _get_record(self, record_type: str, path: str, record_id: Any) -> Dict[str, Any]:
        record_id = str(record_id or "").strip()
        if not record_id:
            return {"error": "A record id is required", "code": INVALID_ARGUMENT}

        try:
            response = self.manager.fetch_page(path.format(bug_id=record_id))
        except RDMSError as e:
            logger.warning(f"Could not fetch {record_type} {record_id}: {e.message}")
            return e.to_dict()

        extractor = FieldExtractor(
            self.profiles.record(record_type),
            base_url=self.base_url,
            site_name=self.config.site_name,
        )
        try:
            record = extractor.extract(response.text, record_id)
        except Exception as e:
            logger.exception(f"Failed to parse {record_type} {record_id}")
            return {"error": f"Failed to parse {record_type} page: {e}", "code": EXTRACTION_ERROR}

        logger.info(f"Fetched {record_type} {record_id}: {record.title!r}")
        return record.to_dict()

    # -------------------------------------------------------------------------
    # Lists
    # -------------------------------------------------------------------------

    def list_my_bugs(self, status: Optional[str] = "active", limit: Any = DEFAULT_RESULT_CAP) -> Dict[str, Any]:
        """Bugs assigned to the logged-in user."""
        return self._get_list("my_bugs", MY_BUGS_PATH, MY_BUGS_LABEL, limit, status)

    def list_my_market_bugs(self, limit: Any = DEFAULT_RESULT_CAP) -> Dict[str, Any]:
        """Market bugs assigned to the logged-in user."""
        return self._get_list("my_market_bugs", MY_MARKET_BUGS_PATH, MY_MARKET_BUGS_LABEL, limit)

    def _get_list(
        self,
        layout_name: str,
        path: str,
        label: str,
        limit: Any,
        status: Optional[str] = None,
    ) -> Dict[str, Any]:
        result_cap = _as_limit(limit)

        try:
            response = self.manager.fetch_page(path)
        except RDMSError as e:
            logger.warning(f"Could not fetch {layout_name}: {e.message}")
            return _list_error(e.message, e.code, label)

        extractor = ListExtractor(self.profiles.layout(layout_name), base_url=self.base_url)
        try:
            result = extractor.extract(
                response.text, result_cap=result_cap, label=label, status_filter=status
            )
        except Exception as e:
            logger.exception(f"Failed to parse {layout_name}")
            return _list_error(f"Failed to parse {label} list: {e}", EXTRACTION_ERROR, label)
        return result.to_dict()

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    def download_image(
        self,
        image_url: str,
        filename: Optional[str] = None,
        analyze: bool = True,
    ) -> ImagePayload:
        """Download an image; saved to ``filename`` when not analyzed inline.

        Raises:
            RDMSError: On authentication, network or download failures
        """
        return self.images.download(image_url, filename=filename, analyze=analyze)


def _as_limit(limit: Any) -> int:
    try:
        value = int(limit)
    except (TypeError, ValueError):
        return DEFAULT_RESULT_CAP
    return max(value, 0)


def _list_error(message: str, code: str, label: str) -> Dict[str, Any]:
    return {
        "success": False,
        "error": message,
        "code": code,
        "total": 0,
        "entries": [],
        "type": label,
    }


def load_thresholds(config: Config) -> ExtractionThresholds:
    """Thresholds from the configured JSON file, else from RDMS_THRESHOLD_* variables."""
    if config.thresholds_file:
        thresholds = ExtractionThresholds.from_file(config.thresholds_file)
    else:
        thresholds = ExtractionThresholds.from_env()
    logger.debug(f"Extraction thresholds: {thresholds.to_dict()}")
    return thresholds
