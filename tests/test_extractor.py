"""Tests for the record field extractor."""

import pytest

from rdms_mcp.extractor import (
    FieldExtractor,
    extract_record,
    parse_history,
    parse_history_text,
)
from rdms_mcp.parser import parse_html
from rdms_mcp.profiles import (
    BUG_FIELDS,
    BUG_PROFILE,
    MARKET_BUG_FIELDS,
    MARKET_BUG_PROFILE,
    RECORD_PROFILES,
)
from tests.conftest import BASE_URL


@pytest.fixture
def bug_extractor():
    return FieldExtractor(BUG_PROFILE, base_url=BASE_URL)


@pytest.fixture
def market_extractor():
    return FieldExtractor(MARKET_BUG_PROFILE, base_url=BASE_URL)


class TestBugPage:
    """Extraction of a full bug page."""

    def test_table_rows_fill_fields(self, bug_extractor, bug_html):
        """Test label/value rows map through the label dictionary."""
        record = bug_extractor.extract(bug_html, "141480")

        assert record.get("product") == "行车记录仪"
        assert record.get("status") == "激活"
        assert record.get("priority") == "2"
        assert record.get("severity") == "3"
        assert record.get("assignedTo") == "张三"
        assert record.get("reporter") == "李四"

    def test_longer_label_wins_over_contained_label(self, bug_extractor, bug_html):
        """Test "解决版本" is not read as the generic "版本" field."""
        record = bug_extractor.extract(bug_html, "141480")

        assert record.get("version") == "V1.2.0"
        assert record.get("resolvedVersion") == "V1.2.1"
        assert record.get("affectedVersion") == ""

    def test_first_matching_row_wins(self, bug_extractor, bug_html):
        """Test a later row for an already-filled field does not overwrite it."""
        record = bug_extractor.extract(bug_html, "141480")

        assert record.get("status") == "激活"

    def test_title_trimmed(self, bug_extractor, bug_html):
        """Test record prefix, site name and product are stripped from the title."""
        record = bug_extractor.extract(bug_html, "141480")

        assert record.title == "Crash on save"

    def test_every_field_present(self, bug_extractor, bug_html):
        """Test missing fields are empty strings, never absent."""
        data = bug_extractor.extract(bug_html, "141480").to_dict()

        for name in BUG_FIELDS:
            assert name in data
        assert data["id"] == "141480"
        assert data["browser"] == ""

    def test_steps_from_label_proximity(self, bug_extractor, bug_html):
        """Test a heading followed by its content fills the field."""
        record = bug_extractor.extract(bug_html, "141480")

        assert record.get("steps").startswith("1. Open file")

    def test_images_in_document_order(self, bug_extractor, bug_html):
        """Test relative images resolve and embedded data URIs are skipped."""
        record = bug_extractor.extract(bug_html, "141480")

        assert record.images == [
            f"{BASE_URL}/file-read-1001.png",
            "https://cdn.example.com/shot.jpg",
        ]

    def test_history_entries(self, bug_extractor, bug_html):
        """Test history lines are split and blank items are dropped."""
        history = bug_extractor.extract(bug_html, "141480").history

        assert len(history) == 3
        assert history[0].time == "2024-03-01 10:22:33"
        assert history[0].operator == "李四"
        assert history[0].action == "创建。"
        assert history[1].comment == "已复现"
        assert history[1].raw_text == "2024-03-02 09:00:00, 由 张三 添加备注。"
        assert history[2].matched is False
        assert "time" not in history[2].to_dict()

    def test_extraction_is_deterministic(self, bug_extractor, bug_html):
        """Test the same page always yields the same record."""
        first = bug_extractor.extract(bug_html, "141480").to_dict()
        second = bug_extractor.extract(bug_html, "141480").to_dict()

        assert first == second


class TestMarketBugPage:
    """Extraction of a market bug page."""

    def test_paired_cells(self, market_extractor, market_bug_html):
        """Test rows holding two label/value pairs fill both fields."""
        record = market_extractor.extract(market_bug_html, "2001")

        assert record.get("status") == "处理中"
        assert record.get("customerName") == "ACME Transit"
        assert record.get("expectedSolveDate") == "2024-05-01"
        assert record.get("solveDate") == "2024-05-03"
        assert record.get("productVersion") == "V3.1"
        assert record.get("version") == "V3"

    def test_section_headings(self, market_extractor, market_bug_html):
        """Test section headings map to their content block."""
        record = market_extractor.extract(market_bug_html, "2001")

        assert record.get("solution") == "Update firmware"
        assert record.get("defectAttribution") == "Hardware"

    def test_theme_and_icon_images_skipped(self, market_extractor, market_bug_html):
        """Test decoration images are excluded."""
        record = market_extractor.extract(market_bug_html, "2001")

        assert record.images == [f"{BASE_URL}/file-read-55.jpg"]

    def test_title_and_fields(self, market_extractor, market_bug_html):
        """Test the title is trimmed and every field is present."""
        data = market_extractor.extract(market_bug_html, "2001").to_dict()

        assert data["title"] == "Screen flickers"
        for name in MARKET_BUG_FIELDS:
            assert name in data


class TestFallbackPasses:
    """Passes that only run for fields the table pass left empty."""

    def test_title_fallback_selector(self, bug_extractor):
        """Test the page heading is used when <title> is empty."""
        html = '<html><head><title></title></head><body><div class="page-title"><span class="text">Fallback heading</span></div></body></html>'

        record = bug_extractor.extract(html, "1")

        assert record.title == "Fallback heading"

    def test_proximity_with_colon(self, bug_extractor):
        """Test a label with a trailing full-width colon finds its neighbour."""
        html = "<html><body><ul><li><span>操作系统：</span><span>Android 12</span></li></ul></body></html>"

        record = bug_extractor.extract(html, "1")

        assert record.get("os") == "Android 12"

    def test_proximity_parent_sibling(self, bug_extractor):
        """Test the value may sit beside the label's parent."""
        html = "<html><body><div><label>浏览器</label></div><div>Chrome</div></body></html>"

        record = bug_extractor.extract(html, "1")

        assert record.get("browser") == "Chrome"

    def test_proximity_header_cell_row(self, bug_extractor):
        """Test a label wrapped in a header cell reads the row's second cell."""
        document = parse_html(
            "<table><tr><th><div><span>浏览器</span></div></th><td>Chrome</td></tr></table>"
        )
        label = document.find("span")

        assert bug_extractor._value_near(label, {"浏览器"}) == "Chrome"

    def test_area_fallback(self, bug_extractor):
        """Test long-text areas are read by class when no label matched."""
        html = '<html><head><title>BUG #7 Area - 锐明RDMS</title></head><body><div class="description">Device reboots when idle</div></body></html>'

        record = bug_extractor.extract(html, "7")

        assert record.get("description") == "Device reboots when idle"
        assert record.title == "Area"

    def test_single_cell_rows_ignored(self, bug_extractor):
        """Test rows with fewer than two cells never fill a field."""
        html = "<html><body><table><tr><td>优先级</td></tr></table></body></html>"

        record = bug_extractor.extract(html, "1")

        assert record.get("priority") == ""

    def test_empty_page(self, bug_extractor):
        """Test an empty page yields an empty record, not an error."""
        record = bug_extractor.extract("", "9")

        assert record.id == "9"
        assert record.images == []
        assert record.history == []
        assert all(value == "" for value in record.fields.values())


class TestTitleCleaning:
    """Tests for clean_title."""

    def test_generic_suffix_stripped(self):
        """Test an unknown site name is still stripped."""
        extractor = FieldExtractor(BUG_PROFILE, site_name="锐明RDMS")

        assert extractor.clean_title("BUG #141480 Crash on save - SiteName") == "Crash on save"

    def test_custom_site_name(self):
        """Test a configured site name is stripped along with the product."""
        extractor = FieldExtractor(BUG_PROFILE, site_name="Tracker")

        assert extractor.clean_title("BUG #5 Login loop - Portal - Tracker", "Portal") == "Login loop"

    def test_plain_title_unchanged(self):
        """Test a title without prefix or suffix is kept."""
        extractor = FieldExtractor(BUG_PROFILE)

        assert extractor.clean_title("Plain title") == "Plain title"


class TestLabelDictionaries:
    """Properties of the built-in label dictionaries."""

    @pytest.mark.parametrize("profile", list(RECORD_PROFILES.values()), ids=list(RECORD_PROFILES))
    def test_every_label_resolves_to_its_own_field(self, profile):
        """Test no earlier, shorter label shadows a label for another field."""
        for label, field_name in profile.labels:
            assert profile.field_for_label(label) == field_name, label

    @pytest.mark.parametrize("profile", list(RECORD_PROFILES.values()), ids=list(RECORD_PROFILES))
    def test_labels_target_known_fields(self, profile):
        """Test every dictionary target is a declared field."""
        for _, field_name in profile.labels:
            assert field_name in profile.field_names

    def test_unknown_label(self):
        """Test labels outside the dictionary map to nothing."""
        assert BUG_PROFILE.field_for_label("无关标签") is None


class TestHistory:
    """Tests for history parsing helpers."""

    def test_english_operator(self):
        """Test the English "by" form is recognised."""
        entry = parse_history_text("2024-01-02 03:04:05, by admin Resolved as fixed.")

        assert entry.operator == "admin"
        assert entry.action == "Resolved as fixed."

    def test_unmatched_text_kept(self):
        """Test lines that do not match keep only their raw text."""
        entry = parse_history_text("Something happened", comment="note")

        assert entry.to_dict() == {"rawText": "Something happened", "comment": "note"}

    def test_comment_only_item_kept(self):
        """Test an item with a comment but no text is still an entry."""
        document = parse_html('<div class="histories-list"><ul><li><div class="comment-content">Only a note</div></li></ul></div>')

        history = parse_history(document)

        assert len(history) == 1
        assert history[0].raw_text == ""
        assert history[0].comment == "Only a note"


class TestExtractRecord:
    """Tests for the extract_record helper."""

    def test_by_record_type(self, market_bug_html):
        """Test the profile is chosen by record type."""
        record = extract_record(market_bug_html, "market_bug", "2001", base_url=BASE_URL)

        assert record.record_type == "market_bug"
        assert record.get("solution") == "Update firmware"

    def test_unknown_record_type(self):
        """Test an unknown record type is rejected."""
        with pytest.raises(ValueError):
            extract_record("<html></html>", "story", "1")
