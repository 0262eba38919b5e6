"""RDMS (Zentao) bug tracker client exposed as MCP tools."""

__version__ = "0.1.0"

from rdms_mcp.client import RDMSClient
from rdms_mcp.config import Config, ExtractionThresholds
from rdms_mcp.exceptions import (
    RDMSError,
    AuthError,
    InvalidCredentials,
    CaptchaRequired,
    UnknownLoginFailure,
    NotAuthenticated,
    SessionExpired,
    NetworkError,
    NetworkTimeout,
    ImageFetchFailed,
    ToolNotFoundError,
)
from rdms_mcp.models import (
    HistoryEntry,
    Record,
    ListEntry,
    ListResult,
    ImagePayload,
    LoginResult,
)
from rdms_mcp.extractor import FieldExtractor, extract_record
from rdms_mcp.list_extractor import ListExtractor, extract_list
from rdms_mcp.server import ToolServer

__all__ = [
    "RDMSClient",
    "Config",
    "ExtractionThresholds",
    "RDMSError",
    "AuthError",
    "InvalidCredentials",
    "CaptchaRequired",
    "UnknownLoginFailure",
    "NotAuthenticated",
    "SessionExpired",
    "NetworkError",
    "NetworkTimeout",
    "ImageFetchFailed",
    "ToolNotFoundError",
    "HistoryEntry",
    "Record",
    "ListEntry",
    "ListResult",
    "ImagePayload",
    "LoginResult",
    "FieldExtractor",
    "extract_record",
    "ListExtractor",
    "extract_list",
    "ToolServer",
]
