"""Markup parser adapter.

Thin helpers over BeautifulSoup giving the extraction engines the handful of
operations they need: parse, select, text of an element (or of a selection),
an element's own text without its children, and sibling/ancestor hops.
"""

from typing import Iterable, List, Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

PARSER = "html.parser"


def parse_html(html: str) -> BeautifulSoup:
    """Load raw HTML into a queryable document."""
    return BeautifulSoup(html or "", PARSER)


def text_of(element: Optional[Tag]) -> str:
    """Trimmed text of an element and all of its descendants."""
    if element is None:
        return ""
    return element.get_text().strip()


def select_text(root: Tag, selector: str) -> str:
    """Concatenated text of every element matching ``selector`` under ``root``."""
    return "".join(el.get_text() for el in root.select(selector)).strip()


def first_text(root: Tag, selectors: Iterable[str]) -> str:
    """Text of the first selector that yields a non-empty selection."""
    for selector in selectors:
        text = select_text(root, selector)
        if text:
            return text
    return ""


def own_text(element: Tag) -> str:
    """Text of the element's direct text nodes, child elements removed."""
    parts = [
        str(child)
        for child in element.children
        if isinstance(child, NavigableString) and not isinstance(child, Comment)
    ]
    return "".join(parts).strip()


def cells_of(row: Tag) -> List[Tag]:
    """The row's own th/td cells in document order (nested tables excluded)."""
    return row.find_all(["td", "th"], recursive=False)


def data_cells_of(row: Tag) -> List[Tag]:
    """The row's own td cells."""
    return row.find_all("td", recursive=False)


def next_element(element: Optional[Tag]) -> Optional[Tag]:
    """Next sibling that is an element, skipping text nodes."""
    if element is None:
        return None
    return element.find_next_sibling()


def closest(element: Tag, name: str) -> Optional[Tag]:
    """The element itself or its nearest ancestor with the given tag name."""
    if element.name == name:
        return element
    return element.find_parent(name)


def has_class(element: Optional[Tag], class_name: str) -> bool:
    return element is not None and class_name in (element.get("class") or [])


def input_value(document: Tag, name: str) -> Optional[str]:
    """Value attribute of ``<input name=...>``, if present."""
    field = document.find("input", attrs={"name": name})
    if field is None:
        return None
    value = field.get("value")
    return value if value else None
