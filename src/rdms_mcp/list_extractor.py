"""
List extraction engine.

Enumerates the rows of a listing page into ListEntry summaries. Row
strategies from the page layout are tried most specific first; the first
strategy that finds any row is the only one used. Auxiliary columns come from
the layout's CSS hooks first and its per-page column offsets second.
"""
import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from rdms_mcp.constants import (
    DEFAULT_RESULT_CAP,
    LIST_EMPTY_MESSAGE,
    LIST_FOUND_MESSAGE,
    LIST_HEADER_TOKENS,
    STATUS_FILTER_ALIASES,
    STATUS_FILTER_ALL,
)
from rdms_mcp.models import ListEntry, ListResult
from rdms_mcp.parser import closest, data_cells_of, parse_html, select_text, text_of
from rdms_mcp.profiles import ListLayout, RowStrategy

logger = logging.getLogger(__name__)

_DIGITS_RE = re.compile(r"[0-9]+")

# ListEntry attributes a layout may fill from selectors or offsets
AUX_FIELDS = (
    "status", "priority", "severity", "assigned_to", "reporter",
    "resolver", "resolution", "created",
)


class ListExtractor:
    """Extracts listing rows for one page layout."""

    def __init__(self, layout: ListLayout, base_url: str = ""):
        """Initialize the extractor.

        Args:
            layout: Listing page layout (row strategies and column offsets)
            base_url: Server root used to resolve relative row links
        """
        self.layout = layout
        self.base_url = base_url.rstrip("/")
        self._link_res = [re.compile(pattern) for pattern in layout.link_patterns]

    def extract(
        self,
        html: str,
        result_cap: int = DEFAULT_RESULT_CAP,
        label: str = "",
        status_filter: Optional[str] = None,
    ) -> ListResult:
        """Extract up to ``result_cap`` entries from a listing page.

        Args:
            html: Raw page HTML
            result_cap: Maximum number of entries to return
            label: Human label used in the reply message and type
            status_filter: Optional status filter ("all" keeps everything)

        Returns:
            ListResult; an empty page is a successful zero-result reply
        """
        document = parse_html(html)
        strategy, rows = self._find_rows(document)

        entries: List[ListEntry] = []
        seen = set()
        for row, link in rows:
            if len(entries) >= result_cap:
                break
            entry = self._entry_from_row(row, link)
            if entry is None or entry.id in seen:
                continue
            if not status_matches(entry.status, status_filter):
                continue
            seen.add(entry.id)
            entries.append(entry)

        if entries:
            logger.info(
                f"Extracted {len(entries)} {self.layout.name} entries "
                f"using '{strategy.name}' rows"
            )
            return ListResult(
                entries=entries,
                type=label,
                message=LIST_FOUND_MESSAGE.format(count=len(entries), label=label),
            )

        if self.has_empty_marker(document):
            logger.info(f"{self.layout.name}: page reports no records")
        else:
            logger.info(f"{self.layout.name}: no rows matched and no empty-state marker found")
        return ListResult(type=label, message=LIST_EMPTY_MESSAGE.format(label=label))

    # -------------------------------------------------------------------------
    # Rows
    # -------------------------------------------------------------------------

    def _find_rows(
        self, document: BeautifulSoup
    ) -> Tuple[Optional[RowStrategy], List[Tuple[Tag, Optional[Tag]]]]:
        for strategy in self.layout.row_strategies:
            rows = list(self._rows_for(document, strategy))
            if rows:
                return strategy, rows
        return None, []

    def _rows_for(
        self, document: BeautifulSoup, strategy: RowStrategy
    ) -> Iterable[Tuple[Tag, Optional[Tag]]]:
        for element in document.select(strategy.selector):
            if strategy.anchor:
                if self._link_id(element.get("href") or ""):
                    yield closest(element, "tr") or element, element
                continue
            link = self._title_link(element)
            if strategy.require_link and link is None:
                continue
            yield element, link

    def _link_id(self, href: str) -> str:
        for pattern in self._link_res:
            match = pattern.search(href)
            if match:
                return match.group(1)
        return ""

    def _view_links(self, row: Tag) -> List[Tag]:
        return [a for a in row.find_all("a", href=True) if self._link_id(a["href"])]

    def _title_link(self, row: Tag) -> Optional[Tag]:
        """The row's view link, preferring one whose text is not just the id."""
        links = self._view_links(row)
        for link in links:
            if not _DIGITS_RE.fullmatch(text_of(link)):
                return link
        return links[0] if links else None

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    def _entry_from_row(self, row: Tag, link: Optional[Tag]) -> Optional[ListEntry]:
        cells = data_cells_of(row) if row.name == "tr" else []
        href = link.get("href", "") if link is not None else ""

        entry_id = (row.get("data-id") or "").strip()
        if not _DIGITS_RE.fullmatch(entry_id):
            entry_id = self._link_id(href)

        title = text_of(link) if link is not None else ""
        if (not title or title == entry_id) and self.layout.title_column is not None:
            title = _cell_text(cells, self.layout.title_column)

        if not is_valid_entry(entry_id, title):
            return None

        entry = ListEntry(id=entry_id, title=title, url=self.resolve(href) if href else "")
        for attr in AUX_FIELDS:
            setattr(entry, attr, self._aux_value(row, cells, attr))
        return entry

    def _aux_value(self, row: Tag, cells: Sequence[Tag], attr: str) -> str:
        for selector in self.layout.field_selectors.get(attr, ()):
            value = select_text(row, selector)
            if value:
                return value
        offset = self.layout.column_offsets.get(attr)
        if offset is None:
            return ""
        return _cell_text(cells, offset)

    def has_empty_marker(self, document: BeautifulSoup) -> bool:
        tip = select_text(document, self.layout.empty_tip_selector)
        return any(marker in tip for marker in self.layout.empty_markers)

    def resolve(self, href: str) -> str:
        if href.startswith(("http://", "https://")) or not self.base_url:
            return href
        return urljoin(self.base_url + "/", href)


def _cell_text(cells: Sequence[Tag], index: int) -> str:
    if 0 <= index < len(cells):
        return text_of(cells[index])
    return ""


def is_valid_entry(entry_id: str, title: str) -> bool:
    """Rows without a positive numeric id or a title are headers or noise."""
    if not entry_id or entry_id in LIST_HEADER_TOKENS:
        return False
    if not _DIGITS_RE.fullmatch(entry_id) or int(entry_id) <= 0:
        return False
    return bool(title)


def status_matches(status: str, status_filter: Optional[str]) -> bool:
    """Whether an entry's status passes the filter.

    Entries with no status on the page are kept; the listing does not always
    show one.
    """
    wanted = (status_filter or "").strip().lower()
    if wanted in STATUS_FILTER_ALL or not status:
        return True
    aliases = STATUS_FILTER_ALIASES.get(wanted, (wanted,))
    lowered = status.lower()
    return any(alias.lower() in lowered for alias in aliases)


def extract_list(
    html: str,
    layout: ListLayout,
    result_cap: int = DEFAULT_RESULT_CAP,
    label: str = "",
    base_url: str = "",
    status_filter: Optional[str] = None,
) -> ListResult:
    """Extract a listing page with the given layout."""
    return ListExtractor(layout, base_url=base_url).extract(
        html, result_cap=result_cap, label=label, status_filter=status_filter
    )
