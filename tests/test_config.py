"""Tests for configuration loading."""

import json
import os
from unittest.mock import patch

from rdms_mcp.config import DEFAULT_SITE_NAME, Config, ExtractionThresholds
from rdms_mcp.constants import DEFAULT_REQUEST_TIMEOUT_SECONDS


class TestConfig:
    """Tests for Config."""

    def test_defaults(self):
        """Test defaults when nothing is set."""
        with patch.dict(os.environ, {}, clear=True):
            config = Config.from_env()

        assert config.base_url == ""
        assert config.timeout == DEFAULT_REQUEST_TIMEOUT_SECONDS
        assert config.site_name == DEFAULT_SITE_NAME
        assert config.profile_file is None
        assert config.thresholds_file is None
        assert not config.has_credentials

    def test_from_env(self):
        """Test values come from RDMS_* variables."""
        env = {
            "RDMS_BASE_URL": "https://rdms.example.com/",
            "RDMS_USERNAME": "tester",
            "RDMS_PASSWORD": "secret",
            "RDMS_TIMEOUT": "10",
            "RDMS_THRESHOLDS_FILE": "thresholds.json",
            "LOG_LEVEL": "DEBUG",
        }
        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env()

        assert config.base_url == "https://rdms.example.com"
        assert config.timeout == 10
        assert config.log_level == "DEBUG"
        assert config.thresholds_file == "thresholds.json"
        assert config.has_credentials


class TestExtractionThresholds:
    """Tests for ExtractionThresholds."""

    def test_defaults(self):
        """Test built-in thresholds."""
        thresholds = ExtractionThresholds()

        assert thresholds.login_stub_max_length == 200
        assert thresholds.session_expiry_max_length == 500

    def test_from_env(self):
        """Test prefixed overrides; invalid values keep the default."""
        env = {
            "RDMS_THRESHOLD_SESSION_EXPIRY_MAX_LENGTH": "800",
            "RDMS_THRESHOLD_LOGIN_STUB_MAX_LENGTH": "abc",
        }
        with patch.dict(os.environ, env, clear=True):
            thresholds = ExtractionThresholds.from_env()

        assert thresholds.session_expiry_max_length == 800
        assert thresholds.login_stub_max_length == 200

    def test_from_file(self, tmp_path):
        """Test thresholds from a JSON file."""
        path = tmp_path / "thresholds.json"
        path.write_text(json.dumps({"thresholds": {"login_stub_max_length": 150}}))

        thresholds = ExtractionThresholds.from_file(str(path))

        assert thresholds.login_stub_max_length == 150
        assert thresholds.to_dict() == {"login_stub_max_length": 150, "session_expiry_max_length": 500}

    def test_missing_file(self, tmp_path):
        """Test a missing file yields defaults."""
        thresholds = ExtractionThresholds.from_file(str(tmp_path / "missing.json"))

        assert thresholds.to_dict() == ExtractionThresholds().to_dict()
