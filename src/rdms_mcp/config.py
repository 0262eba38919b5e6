from dotenv import load_dotenv
from dataclasses import dataclass
from typing import Optional
from pathlib import Path
import json
import os

from rdms_mcp.constants import DEFAULT_REQUEST_TIMEOUT_SECONDS, DEFAULT_USER_AGENT

load_dotenv()  # Loads variables from .env file


DEFAULT_SITE_NAME = "锐明RDMS"


@dataclass
class Config:
    """Configuration for the RDMS client."""
    base_url: str = ""
    username: str = ""
    password: str = ""
    timeout: int = DEFAULT_REQUEST_TIMEOUT_SECONDS
    user_agent: str = DEFAULT_USER_AGENT
    site_name: str = DEFAULT_SITE_NAME
    profile_file: Optional[str] = None
    thresholds_file: Optional[str] = None
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables.

        Returns:
            Config: Configuration instance with values from environment
        """
        return cls(
            base_url=os.getenv("RDMS_BASE_URL", "").rstrip("/"),
            username=os.getenv("RDMS_USERNAME", ""),
            password=os.getenv("RDMS_PASSWORD", ""),
            timeout=int(os.getenv("RDMS_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT_SECONDS))),
            user_agent=os.getenv("RDMS_USER_AGENT", DEFAULT_USER_AGENT),
            site_name=os.getenv("RDMS_SITE_NAME", DEFAULT_SITE_NAME),
            profile_file=os.getenv("RDMS_PROFILE_FILE") or None,
            thresholds_file=os.getenv("RDMS_THRESHOLDS_FILE") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE") or None,
        )

    @property
    def has_credentials(self) -> bool:
        """Whether enough is configured to log in without a caller."""
        return bool(self.base_url and self.username and self.password)


@dataclass
class ExtractionThresholds:
    """Configurable thresholds for login and session heuristics."""

    # A successful login answers with a short redirect stub
    login_stub_max_length: int = 200

    # Pages shorter than this that mention the login page mean the session is gone
    session_expiry_max_length: int = 500

    @classmethod
    def from_env(cls) -> "ExtractionThresholds":
        """Load thresholds from environment variables.

        Environment variables should be prefixed with RDMS_THRESHOLD_
        e.g., RDMS_THRESHOLD_SESSION_EXPIRY_MAX_LENGTH=800

        Returns:
            ExtractionThresholds with values from environment
        """
        thresholds = cls()
        prefix = "RDMS_THRESHOLD_"

        for field_name in thresholds.__dataclass_fields__:
            env_value = os.getenv(f"{prefix}{field_name.upper()}")

            if env_value is not None:
                try:
                    setattr(thresholds, field_name, int(env_value))
                except ValueError:
                    pass  # Keep default if conversion fails

        return thresholds

    @classmethod
    def from_file(cls, path: str) -> "ExtractionThresholds":
        """Load thresholds from a JSON configuration file.

        Args:
            path: Path to JSON configuration file

        Returns:
            ExtractionThresholds with values from file
        """
        thresholds = cls()
        file_path = Path(path)

        if not file_path.exists():
            return thresholds

        with open(file_path, 'r') as f:
            config = json.load(f)

        threshold_config = config.get('thresholds', config)

        for field_name in thresholds.__dataclass_fields__:
            if field_name in threshold_config:
                setattr(thresholds, field_name, int(threshold_config[field_name]))

        return thresholds

    def to_dict(self) -> dict:
        """Convert thresholds to dictionary."""
        return {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }


# Global default thresholds instance
default_thresholds = ExtractionThresholds()
