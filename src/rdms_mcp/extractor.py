"""
Field extraction engine.

Turns a record page into a normalized Record. Passes run in a fixed order and
a later pass only fills fields that are still empty:

1. table rows: cell 0 is the label, cell 1 the value (every even/odd pair
   when the profile reads paired cells)
2. title from <title>, with the record-number prefix and site suffix trimmed
3. section headings (market bugs): heading text -> whole section text
4. text proximity: an element whose text is exactly the label, value taken
   from its next sibling, its parent's next sibling, or the row's second cell
5. long-text areas matched by class/name

Images and history entries are collected independently of the field passes.
"""
import logging
import re
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from rdms_mcp.config import DEFAULT_SITE_NAME
from rdms_mcp.constants import (
    HISTORY_COMMENT_SELECTOR,
    HISTORY_ITEM_SELECTOR,
    HISTORY_PATTERN,
    LABEL_COLON_SUFFIXES,
    TITLE_PREFIX_PATTERN,
)
from rdms_mcp.models import HistoryEntry, Record
from rdms_mcp.parser import (
    cells_of,
    closest,
    first_text,
    has_class,
    next_element,
    own_text,
    parse_html,
    select_text,
    text_of,
)
from rdms_mcp.profiles import RECORD_PROFILES, RecordProfile

logger = logging.getLogger(__name__)

_TITLE_PREFIX_RE = re.compile(TITLE_PREFIX_PATTERN)
_GENERIC_SUFFIX_RE = re.compile(r"\s+-\s+\S+\s*$")
_HISTORY_RE = re.compile(HISTORY_PATTERN, re.DOTALL)


class FieldExtractor:
    """Extracts one record type from its HTML page."""

    def __init__(
        self,
        profile: RecordProfile,
        base_url: str = "",
        site_name: str = DEFAULT_SITE_NAME,
    ):
        """Initialize the extractor.

        Args:
            profile: Record profile (field set and label dictionary)
            base_url: Server root used to resolve relative image URLs
            site_name: Trailing site name appended to every document title
        """
        self.profile = profile
        self.base_url = base_url.rstrip("/")
        self.site_name = site_name

    def extract(self, html: str, record_id: str) -> Record:
        """Extract a record from page HTML.

        Args:
            html: Raw page HTML
            record_id: Identifier the page was requested with

        Returns:
            Record with every profile field present
        """
        document = parse_html(html)
        record = Record(
            record_type=self.profile.record_type,
            id=str(record_id),
            fields={name: "" for name in self.profile.field_names},
        )

        self._table_pass(document, record)
        record.fields["title"] = self.extract_title(document, record.get("product"))
        if self.profile.section_fields:
            self._section_pass(document, record)
        self._proximity_pass(document, record)
        self._area_pass(document, record)

        record.images = self.collect_images(document)
        record.history = parse_history(document)

        filled = sum(1 for name in self.profile.field_names if record.fields[name])
        logger.debug(
            f"Extracted {self.profile.record_type} {record_id}: "
            f"{filled}/{len(self.profile.field_names)} fields, "
            f"{len(record.images)} images, {len(record.history)} history entries"
        )
        return record

    # -------------------------------------------------------------------------
    # Field passes
    # -------------------------------------------------------------------------

    def _set_if_empty(self, record: Record, field_name: Optional[str], value: str) -> bool:
        if field_name and value and field_name in record.fields and not record.fields[field_name]:
            record.fields[field_name] = value
            return True
        return False

    def _table_pass(self, document: BeautifulSoup, record: Record) -> None:
        for row in document.select(self.profile.row_selector):
            cells = cells_of(row)
            if len(cells) < 2:
                continue
            step = 2 if self.profile.paired_cells else len(cells)
            for k in range(0, len(cells) - 1, step):
                label = text_of(cells[k])
                if not label:
                    continue
                field_name = self.profile.field_for_label(label)
                if field_name is None:
                    continue
                self._set_if_empty(record, field_name, self._cell_value(cells[k + 1]))

    def _cell_value(self, cell: Tag) -> str:
        if self.profile.value_content_selector:
            nested = select_text(cell, self.profile.value_content_selector)
            if nested:
                return nested
        return text_of(cell)

    def extract_title(self, document: BeautifulSoup, product: str = "") -> str:
        """Document title with the record prefix and site suffix trimmed."""
        title = text_of(document.title)
        if not title:
            return first_text(document, self.profile.title_fallback_selectors)
        return self.clean_title(title, product)

    def clean_title(self, title: str, product: str = "") -> str:
        title = _TITLE_PREFIX_RE.sub("", title)

        site_suffix = re.compile(r"\s*-\s*" + re.escape(self.site_name) + r"\s*$") if self.site_name else None
        if site_suffix and site_suffix.search(title):
            title = site_suffix.sub("", title)
            if product:
                title = re.sub(r"\s*-\s*" + re.escape(product) + r"\s*$", "", title)
        else:
            title = _GENERIC_SUFFIX_RE.sub("", title)
        return title.strip()

    def _section_pass(self, document: BeautifulSoup, record: Record) -> None:
        for heading in document.select(self.profile.section_title_selector):
            field_name = self.profile.section_fields.get(text_of(heading))
            if field_name is None:
                continue
            content = next_element(heading)
            if has_class(content, self.profile.section_content_class):
                self._set_if_empty(record, field_name, text_of(content))

    def _proximity_pass(self, document: BeautifulSoup, record: Record) -> None:
        pending = [
            (label, field_name)
            for label, field_name in self.profile.labels
            if not record.fields.get(field_name)
        ]
        if not pending:
            return

        # Text of every element, computed once, in document order
        elements = [(el, text_of(el)) for el in document.find_all(True)]

        for label, field_name in pending:
            if record.fields.get(field_name):
                continue
            accepted = {label} | {label + suffix for suffix in LABEL_COLON_SUFFIXES}
            for element, text in elements:
                if text not in accepted:
                    continue
                value = self._value_near(element, accepted)
                if value:
                    record.fields[field_name] = value
                    break

    def _value_near(self, element: Tag, label_texts: set) -> str:
        candidates: List[str] = [
            text_of(next_element(element)),
            text_of(next_element(element.parent)),
        ]
        row = closest(element, "tr")
        if row is not None:
            cells = cells_of(row)
            if len(cells) > 1:
                candidates.append(text_of(cells[1]))

        for value in candidates:
            if value and value not in label_texts:
                return value
        return ""

    def _area_pass(self, document: BeautifulSoup, record: Record) -> None:
        for field_name, selectors in self.profile.area_selectors.items():
            if record.fields.get(field_name):
                continue
            text = select_text(document, ", ".join(selectors))
            self._set_if_empty(record, field_name, text)

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    def collect_images(self, document: BeautifulSoup) -> List[str]:
        """Absolute URLs of every non-embedded <img>, in document order."""
        images = []
        for img in document.find_all("img"):
            src = (img.get("src") or "").strip()
            if not src:
                continue
            if any(marker in src for marker in self.profile.image_exclude_markers):
                continue
            images.append(self.resolve(src))
        return images

    def resolve(self, url: str) -> str:
        if url.startswith(("http://", "https://")) or not self.base_url:
            return url
        return urljoin(self.base_url + "/", url)


# =============================================================================
# History
# =============================================================================

def parse_history_text(raw_text: str, comment: Optional[str] = None) -> HistoryEntry:
    """Build a history entry, splitting "<time>, 由 <operator> <action>" when it matches."""
    entry = HistoryEntry(raw_text=raw_text, comment=comment or None)
    match = _HISTORY_RE.match(raw_text)
    if match:
        entry.time, entry.operator, entry.action = match.group(1), match.group(2), match.group(3).strip()
    return entry


def parse_history(document: BeautifulSoup) -> List[HistoryEntry]:
    """History entries of a record page in document order."""
    entries = []
    for item in document.select(HISTORY_ITEM_SELECTOR):
        raw_text = own_text(item)
        comment = select_text(item, HISTORY_COMMENT_SELECTOR)
        if not raw_text and not comment:
            continue
        entries.append(parse_history_text(raw_text, comment))
    return entries


def extract_record(
    html: str,
    record_type: str,
    record_id: str,
    base_url: str = "",
    site_name: str = DEFAULT_SITE_NAME,
    profile: Optional[RecordProfile] = None,
) -> Record:
    """Extract a record of the given type from page HTML."""
    if profile is None:
        try:
            profile = RECORD_PROFILES[record_type]
        except KeyError:
            raise ValueError(f"Unknown record type: {record_type}") from None
    return FieldExtractor(profile, base_url=base_url, site_name=site_name).extract(html, record_id)
