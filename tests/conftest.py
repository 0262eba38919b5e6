"""Shared fixtures for the RDMS client tests."""

from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import Mock

import pytest
import requests
from requests.structures import CaseInsensitiveDict
from requests.utils import get_encoding_from_headers

from rdms_mcp.config import Config, ExtractionThresholds
from rdms_mcp.http_client import FetchResponse
from rdms_mcp.session import Session

FIXTURES = Path(__file__).parent / "fixtures"
BASE_URL = "https://rdms.example.com"
LOGIN_URL = f"{BASE_URL}/index.php?m=user&f=login"


def load_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


def make_response(
    url: str = BASE_URL,
    status_code: int = 200,
    content: bytes = b"",
    headers: Optional[Dict[str, str]] = None,
    cookies: Optional[Dict[str, str]] = None,
    history: Optional[List[requests.Response]] = None,
) -> requests.Response:
    """Build a requests.Response the way the transport adapter would."""
    response = requests.Response()
    response.status_code = status_code
    response.url = url
    response._content = content
    response.headers = CaseInsensitiveDict(headers or {"Content-Type": "text/html; charset=utf-8"})
    response.encoding = get_encoding_from_headers(response.headers)
    for name, value in (cookies or {}).items():
        response.cookies.set(name, value)
    response.history = history or []
    return response


def page(html: str, url: str = BASE_URL, status_code: int = 200, content_type: str = "text/html; charset=utf-8") -> FetchResponse:
    """FetchResponse for an HTML page."""
    return FetchResponse(
        url=url,
        status_code=status_code,
        headers={"Content-Type": content_type},
        content=html.encode("utf-8"),
    )


@pytest.fixture
def config():
    return Config(base_url=BASE_URL, username="tester", password="secret")


@pytest.fixture
def thresholds():
    return ExtractionThresholds()


@pytest.fixture
def session():
    return Session(base_url=BASE_URL, username="tester", password="secret")


@pytest.fixture
def http():
    """A real requests session whose transport is replaced by a Mock."""
    http = requests.Session()
    http.request = Mock()
    return http


@pytest.fixture
def bug_html():
    return load_fixture("bug_view.html")


@pytest.fixture
def market_bug_html():
    return load_fixture("market_bug_view.html")


@pytest.fixture
def my_bugs_html():
    return load_fixture("my_bugs.html")


@pytest.fixture
def my_bugs_empty_html():
    return load_fixture("my_bugs_empty.html")


@pytest.fixture
def my_market_bugs_html():
    return load_fixture("my_market_bugs.html")
