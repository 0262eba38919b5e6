"""Tests for session state."""

from rdms_mcp.session import Session
from tests.conftest import BASE_URL


class TestSession:
    """Tests for Session."""

    def test_has_credentials(self, session):
        """Test credentials require server, account and password."""
        assert session.has_credentials
        assert not Session(base_url=BASE_URL, username="tester").has_credentials

    def test_merge_cookies(self, session):
        """Test merge is a by-name union."""
        session.merge_cookies({"a": "1", "b": "2"})
        session.merge_cookies({"b": "3", "": "ignored"})

        assert session.cookies == {"a": "1", "b": "3"}

    def test_switch_server(self, session):
        """Test a new server drops cookies and the login flag."""
        session.cookies["a"] = "1"
        session.authenticated = True

        session.switch_server("https://other.example.com/")

        assert session.base_url == "https://other.example.com"
        assert session.cookies == {}
        assert session.authenticated is False

    def test_same_server_keeps_cookies(self, session):
        """Test re-pointing at the same server is a no-op."""
        session.cookies["a"] = "1"
        session.authenticated = True

        session.switch_server(BASE_URL + "/")

        assert session.cookies == {"a": "1"}
        assert session.authenticated is True

    def test_invalidate_keeps_cookies(self, session):
        """Test invalidation only clears the login flag."""
        session.cookies["a"] = "1"
        session.authenticated = True

        session.invalidate()

        assert session.authenticated is False
        assert session.cookies == {"a": "1"}

    def test_to_dict_hides_password(self, session):
        """Test the password is never serialized."""
        assert "password" not in session.to_dict()
