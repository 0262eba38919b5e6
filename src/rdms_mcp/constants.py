# src/rdms_mcp/constants.py
"""Centralized constants for the RDMS client.

This module contains URL routes, marker phrases and magic numbers used
across multiple modules. For user-configurable thresholds, see config.py
and ExtractionThresholds.
"""

# =============================================================================
# Server Routes (Zentao-style index.php routing)
# =============================================================================

LOGIN_PATH = "/index.php?m=user&f=login"
BUG_VIEW_PATH = "/index.php?m=bug&f=view&bugID={bug_id}"
MARKET_BUG_VIEW_PATH = "/index.php?m=bugmarket&f=view&bugID={bug_id}"
MY_BUGS_PATH = "/index.php?m=my&f=work&mode=bug&type=assignedTo"
MY_MARKET_BUGS_PATH = (
    "/index.php?m=bugmarket&f=browse&productid=0&branch=0&browseType=assigntome"
)


# =============================================================================
# HTTP Constants
# =============================================================================

# Default request timeout in seconds
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

REDIRECT_STATUS_CODES = (301, 302, 303, 307, 308)


# =============================================================================
# Login Classification
# =============================================================================

# Form fields posted with the credentials
LOGIN_ACCOUNT_FIELD = "account"
LOGIN_PASSWORD_FIELD = "password"
LOGIN_KEEP_FIELD = "keepLogin"

# Hidden anti-forgery / verification fields copied from the login form
LOGIN_TOKEN_FIELDS = ("token", "verifyRand")

# Client-side "go to root/self" scripts emitted after a successful login
LOGIN_REDIRECT_SCRIPTS = (
    "self.location='/'",
    'self.location="/"',
    "parent.location='/'",
    "location.href='/'",
)

INVALID_CREDENTIAL_PHRASES = (
    "登录失败",
    "用户名或密码",
    "Login failed",
    "Invalid username or password",
)

CAPTCHA_PHRASES = (
    "验证码",
    "captcha",
)

# Marker found in pages served to anonymous visitors
LOGIN_PAGE_MARKER = "login"


# =============================================================================
# Extraction Constants
# =============================================================================

# Record number prefix in document titles, e.g. "BUG #141480 "
TITLE_PREFIX_PATTERN = r"^\s*BUG\s*#\d+\s*"

# History lines look like "2024-03-01 10:22:33, 由 张三 创建。"
HISTORY_ITEM_SELECTOR = ".histories-list li"
HISTORY_COMMENT_SELECTOR = ".comment-content"
HISTORY_PATTERN = (
    r"^(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2}),\s*(?:由|by)\s*(\S+)\s+(.+)$"
)

# Label suffixes tolerated by the proximity pass
LABEL_COLON_SUFFIXES = (":", "：")

# Image sources containing any of these are embedded, never fetched
EMBEDDED_IMAGE_MARKERS = ("data:", "base64")


# =============================================================================
# List Extraction Constants
# =============================================================================

DEFAULT_RESULT_CAP = 20

# Literal cell texts of header rows
LIST_HEADER_TOKENS = ("ID", "id", "编号")

LIST_FOUND_MESSAGE = "找到 {count} 个{label}"
LIST_EMPTY_MESSAGE = "暂无{label}"

MY_BUGS_LABEL = "我的BUG"
MY_MARKET_BUGS_LABEL = "市场Bug"

# Status filter aliases accepted by list_my_bugs
STATUS_FILTER_ALIASES = {
    "active": ("激活", "active"),
    "resolved": ("已解决", "resolved"),
    "closed": ("已关闭", "closed"),
}
STATUS_FILTER_ALL = ("", "all")


# =============================================================================
# Image Constants
# =============================================================================

DEFAULT_IMAGE_MIME_TYPE = "image/png"
DEFAULT_IMAGE_SUBTYPE = "png"
