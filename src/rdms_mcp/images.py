"""Image retrieval under the authenticated session."""

import logging
from pathlib import Path
from typing import Optional, Tuple

from rdms_mcp.auth import SessionManager
from rdms_mcp.constants import DEFAULT_IMAGE_MIME_TYPE, DEFAULT_IMAGE_SUBTYPE
from rdms_mcp.exceptions import ImageFetchFailed
from rdms_mcp.http_client import FetchClient
from rdms_mcp.models import ImagePayload

logger = logging.getLogger(__name__)


def parse_image_type(content_type: Optional[str]) -> Tuple[str, str]:
    """MIME type and subtype from a Content-Type header, defaulting to PNG."""
    mime_type = (content_type or "").split(";")[0].strip().lower()
    if "/" in mime_type:
        subtype = mime_type.split("/", 1)[1].strip()
        if subtype:
            return mime_type, subtype
    return DEFAULT_IMAGE_MIME_TYPE, DEFAULT_IMAGE_SUBTYPE


class ImageRetriever:
    """Downloads images (screenshots, attachments) referenced by records."""

    def __init__(self, manager: SessionManager, fetch: FetchClient):
        self.manager = manager
        self.fetch = fetch

    def fetch_image(self, url: str) -> ImagePayload:
        """Download an image as raw bytes.

        Args:
            url: Absolute image URL or a path relative to the server root

        Returns:
            ImagePayload with the bytes and their MIME type

        Raises:
            NotAuthenticated: If no session can be established
            SessionExpired: If the server answers with the login page
            ImageFetchFailed: On an HTTP error status or an empty body
            NetworkError: On connection failures and timeouts
        """
        self.manager.ensure_authenticated()
        url = self.fetch.resolve(url)
        response = self.fetch.get(url)

        if response.status_code >= 400:
            raise ImageFetchFailed(
                f"Failed to download image: HTTP {response.status_code} for {url}"
            )
        if response.content_type.startswith("text/html"):
            self.manager.check_page(response)
        if not response.content:
            raise ImageFetchFailed(f"Failed to download image: empty response for {url}")

        mime_type, subtype = parse_image_type(response.content_type)
        payload = ImagePayload(
            source_url=url,
            mime_type=mime_type,
            mime_subtype=subtype,
            data=response.content,
        )
        logger.info(f"Downloaded image {url} ({subtype}, {payload.byte_length} bytes)")
        return payload

    def save_image(self, payload: ImagePayload, filename: str) -> ImagePayload:
        """Write the payload to ``filename`` and record the resolved path.

        Raises:
            ImageFetchFailed: If the file cannot be written
        """
        path = Path(filename).expanduser().resolve()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload.data)
        except OSError as e:
            logger.warning(f"Could not save image {payload.source_url} to {path}: {e}")
            raise ImageFetchFailed(f"Failed to save image to {path}: {e}") from e
        payload.saved_path = str(path)
        logger.info(f"Saved image {payload.source_url} to {path}")
        return payload

    def download(
        self,
        url: str,
        filename: Optional[str] = None,
        analyze: bool = True,
    ) -> ImagePayload:
        """Fetch an image and, when not returned inline, save it if a filename is given."""
        payload = self.fetch_image(url)
        if not analyze and filename:
            self.save_image(payload, filename)
        return payload
