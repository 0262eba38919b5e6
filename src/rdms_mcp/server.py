"""
MCP (Model Context Protocol) tool server for the RDMS client.

Protocol: JSON-RPC 2.0 over stdio (one JSON object per line). Tool replies are
lists of content blocks: text blocks carry JSON, image downloads add an
inline base64 image block.
"""
import json
import logging
import sys
from typing import Any, Callable, Dict, List, Optional, TextIO

from rdms_mcp import __version__
from rdms_mcp.client import RDMSClient
from rdms_mcp.exceptions import RDMSError, ToolNotFoundError

logger = logging.getLogger(__name__)

SERVER_NAME = "rdms-mcp-server"
PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26")

# JSON-RPC error codes
PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603


# ---------------------------------------------------------------------------
# Tool schema registry
# ---------------------------------------------------------------------------

TOOL_SCHEMAS: List[Dict[str, Any]] = [
    {
        "name": "rdms_login",
        "description": "Log in to the RDMS system. Later calls reuse the session and re-login automatically.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "baseUrl": {"type": "string", "description": "RDMS server root, e.g. https://rdms.example.com"},
                "username": {"type": "string", "description": "Account name"},
                "password": {"type": "string", "description": "Password"},
            },
            "required": ["baseUrl", "username", "password"],
        },
    },
    {
        "name": "rdms_get_bug",
        "description": (
            "Get bug details by ID with image extraction. Returns bug information including "
            "image URLs but NOT image content. If you need to analyze image content, use the "
            "rdms_download_image tool with the returned image URLs."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "bugId": {"type": "string", "description": "Bug ID"},
            },
            "required": ["bugId"],
        },
    },
    {
        "name": "rdms_get_market_bug",
        "description": (
            "Get market bug details by ID with image extraction. Returns market bug information "
            "including image URLs but NOT image content. If you need to analyze image content, "
            "use the rdms_download_image tool with the returned image URLs."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "marketBugId": {"type": "string", "description": "Market bug ID"},
            },
            "required": ["marketBugId"],
        },
    },
    {
        "name": "rdms_get_my_bugs",
        "description": "Get bugs assigned to current user",
        "inputSchema": {
            "type": "object",
            "properties": {
                "status": {"type": "string", "description": "Filter by status (active, resolved, closed, all)", "default": "active"},
                "limit": {"type": "number", "description": "Max results", "default": 20},
            },
        },
    },
    {
        "name": "rdms_get_my_market_bugs",
        "description": "Get market bugs assigned to current user",
        "inputSchema": {
            "type": "object",
            "properties": {
                "limit": {"type": "number", "description": "Max results", "default": 20},
            },
        },
    },
    {
        "name": "rdms_download_image",
        "description": "Download and optionally analyze image from RDMS system",
        "inputSchema": {
            "type": "object",
            "properties": {
                "imageUrl": {"type": "string", "description": "Image URL from RDMS"},
                "filename": {"type": "string", "description": "Optional filename for saved image"},
                "analyze": {"type": "boolean", "description": "Whether to return image for AI analysis", "default": True},
            },
            "required": ["imageUrl"],
        },
    },
]


# ---------------------------------------------------------------------------
# Content blocks
# ---------------------------------------------------------------------------

def text_block(payload: Any) -> Dict[str, Any]:
    """Text content block carrying JSON."""
    return {"type": "text", "text": json.dumps(payload, ensure_ascii=False)}


def image_block(data: str, mime_type: str) -> Dict[str, Any]:
    return {"type": "image", "data": data, "mimeType": mime_type}


class ToolServer:
    """Maps tool calls onto an RDMSClient and speaks JSON-RPC on stdio."""

    def __init__(self, client: RDMSClient):
        self.client = client
        self._tools: Dict[str, Callable[[Dict[str, Any]], List[Dict[str, Any]]]] = {
            "rdms_login": self._login,
            "rdms_get_bug": self._get_bug,
            "rdms_get_market_bug": self._get_market_bug,
            "rdms_get_my_bugs": self._get_my_bugs,
            "rdms_get_my_market_bugs": self._get_my_market_bugs,
            "rdms_download_image": self._download_image,
        }

    # -------------------------------------------------------------------------
    # Tool dispatch
    # -------------------------------------------------------------------------

    def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run a tool and return its content blocks.

        Raises:
            ToolNotFoundError: If no tool has this name
        """
        handler = self._tools.get(name)
        if handler is None:
            raise ToolNotFoundError(f"Unknown tool: {name}")
        logger.info(f"Tool call: {name}")
        return handler(arguments or {})

    def _login(self, args: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [text_block(self.client.login(args.get("baseUrl"), args.get("username"), args.get("password")))]

    def _get_bug(self, args: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [text_block(self.client.get_bug(args.get("bugId")))]

    def _get_market_bug(self, args: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [text_block(self.client.get_market_bug(args.get("marketBugId")))]

    def _get_my_bugs(self, args: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [text_block(self.client.list_my_bugs(args.get("status", "active"), args.get("limit", 20)))]

    def _get_my_market_bugs(self, args: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [text_block(self.client.list_my_market_bugs(args.get("limit", 20)))]

    def _download_image(self, args: Dict[str, Any]) -> List[Dict[str, Any]]:
        image_url = args.get("imageUrl") or ""
        filename = args.get("filename")
        analyze = args.get("analyze", True)
        if isinstance(analyze, str):
            analyze = analyze.strip().lower() not in ("false", "0", "no")

        try:
            payload = self.client.download_image(image_url, filename=filename, analyze=analyze)
        except RDMSError as e:
            logger.warning(f"Image download failed for {image_url}: {e.message}")
            return [text_block({"success": False, "error": e.message, "code": e.code, "imageUrl": image_url})]

        reply = payload.to_dict()
        if analyze:
            reply["message"] = f"Image downloaded successfully ({payload.size_kb}KB)"
            return [text_block(reply), image_block(payload.base64_data, payload.mime_type)]
        if payload.saved_path:
            reply["message"] = f"Image saved to {payload.saved_path}"
        else:
            reply["message"] = "Image downloaded successfully"
        return [text_block(reply)]

    # -------------------------------------------------------------------------
    # JSON-RPC
    # -------------------------------------------------------------------------

    def handle_message(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Answer one JSON-RPC request; notifications get no answer."""
        req_id = message.get("id")
        method = message.get("method", "")
        params = message.get("params") or {}

        if method == "initialize":
            client_version = params.get("protocolVersion", PROTOCOL_VERSIONS[0])
            agreed = client_version if client_version in PROTOCOL_VERSIONS else PROTOCOL_VERSIONS[0]
            return _ok(req_id, {
                "protocolVersion": agreed,
                "capabilities": {"tools": {}},
                "serverInfo": {"name": SERVER_NAME, "version": __version__},
            })

        if method.startswith("notifications/"):
            return None

        if method == "tools/list":
            return _ok(req_id, {"tools": TOOL_SCHEMAS})

        if method == "tools/call":
            try:
                content = self.call_tool(params.get("name", ""), params.get("arguments"))
            except ToolNotFoundError as e:
                return _err(req_id, METHOD_NOT_FOUND, e.message)
            except Exception as e:
                logger.exception(f"Tool execution failed: {params.get('name')}")
                return _err(req_id, INTERNAL_ERROR, f"Tool execution failed: {e}")
            return _ok(req_id, {"content": content, "isError": False})

        if method == "ping":
            return _ok(req_id, {})

        if req_id is None:
            return None
        return _err(req_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    def handle_line(self, line: str) -> Optional[Dict[str, Any]]:
        try:
            message = json.loads(line)
        except json.JSONDecodeError:
            return _err(None, PARSE_ERROR, "Parse error")
        if not isinstance(message, dict):
            return _err(None, PARSE_ERROR, "Parse error")
        return self.handle_message(message)

    def serve(self, stdin: TextIO = sys.stdin, stdout: TextIO = sys.stdout) -> None:
        """Read requests line by line until stdin closes."""
        logger.info("RDMS MCP server running on stdio")
        for line in stdin:
            line = line.strip()
            if not line:
                continue
            reply = self.handle_line(line)
            if reply is not None:
                stdout.write(json.dumps(reply, ensure_ascii=False) + "\n")
                stdout.flush()
        logger.info("stdin closed, shutting down")


def _ok(request_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def _err(request_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}
