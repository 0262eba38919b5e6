"""
Record and listing page profiles.

Everything that differs between the bug page, the market-bug page and the
listing pages lives here as data: the field set, the ordered label
dictionary, long-text area selectors, section headings, image exclusions,
row strategies and per-page column offsets. The extraction engines are
shared.

Label dictionaries are ordered. The first label that is a substring of a
row label wins, so a label that contains a shorter label mapping to another
field must come before it ("解决版本" before "版本").

A YAML file can override label dictionaries and column offsets:

    records:
      bug:
        labels:
          - [严重等级, severity]
    lists:
      my_bugs:
        column_offsets:
          reporter: 5
"""
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml

from rdms_mcp.constants import EMBEDDED_IMAGE_MARKERS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordProfile:
    """How to read one record page family."""

    record_type: str
    field_names: Tuple[str, ...]
    labels: Tuple[Tuple[str, str], ...]
    title_fallback_selectors: Tuple[str, ...] = (".page-title", "h1")
    area_selectors: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    section_fields: Dict[str, str] = field(default_factory=dict)
    image_exclude_markers: Tuple[str, ...] = EMBEDDED_IMAGE_MARKERS
    paired_cells: bool = False
    value_content_selector: Optional[str] = None
    row_selector: str = "table tr, .table tr"
    section_title_selector: str = ".detail-title"
    section_content_class: str = "detail-content"

    def field_for_label(self, label: str) -> Optional[str]:
        """First dictionary field whose key is a substring of ``label``."""
        for key, field_name in self.labels:
            if key in label:
                return field_name
        return None


@dataclass(frozen=True)
class RowStrategy:
    """One way of finding listing rows.

    ``anchor`` strategies treat every matching view link as a row of its own
    (falling back to the enclosing ``tr`` for auxiliary cells).
    """

    name: str
    selector: str
    require_link: bool = True
    anchor: bool = False


@dataclass(frozen=True)
class ListLayout:
    """How to read one listing page family."""

    name: str
    link_patterns: Tuple[str, ...]
    row_strategies: Tuple[RowStrategy, ...]
    field_selectors: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    column_offsets: Dict[str, int] = field(default_factory=dict)
    title_column: Optional[int] = None
    empty_tip_selector: str = ".table-empty-tip"
    empty_markers: Tuple[str, ...] = ()


# =============================================================================
# Record profiles
# =============================================================================

BUG_FIELDS = (
    "title", "status", "priority", "severity", "confirmed", "assignedTo",
    "reporter", "createdBy", "resolvedBy", "closedBy", "cc", "product",
    "project", "module", "version", "affectedVersion", "resolvedVersion", "os",
    "browser", "platformDevice", "bugType", "plan", "attribution",
    "attributionTeam", "valueAttribute", "activationCount", "activationDate",
    "probability", "commonIssue", "execution", "requirement", "task",
    "relatedBugs", "relatedCases", "deadline", "created", "updated",
    "lastModified", "steps", "description", "keywords", "solution",
)

BUG_LABELS = (
    ("Bug状态", "status"),
    ("状态", "status"),
    ("优先级", "priority"),
    ("严重程度", "severity"),
    ("是否确认", "confirmed"),
    ("指派给", "assignedTo"),
    ("由谁创建", "reporter"),
    ("报告人", "reporter"),
    ("创建者", "createdBy"),
    ("由谁解决", "resolvedBy"),
    ("解决者", "resolvedBy"),
    ("由谁关闭", "closedBy"),
    ("关闭者", "closedBy"),
    ("抄送给", "cc"),
    ("所属产品", "product"),
    ("所属项目", "project"),
    ("所属模块", "module"),
    ("影响版本", "version"),
    ("解决版本", "resolvedVersion"),
    ("版本", "affectedVersion"),
    ("操作系统", "os"),
    ("浏览器", "browser"),
    ("平台/设备", "platformDevice"),
    ("Bug类型", "bugType"),
    ("类型", "bugType"),
    ("所属计划", "plan"),
    ("计划", "plan"),
    ("归属团队", "attributionTeam"),
    ("归属", "attribution"),
    ("价值属性", "valueAttribute"),
    ("激活次数", "activationCount"),
    ("激活日期", "activationDate"),
    ("出现概率", "probability"),
    ("常见问题", "commonIssue"),
    ("执行", "execution"),
    ("关联需求", "requirement"),
    ("相关需求", "requirement"),
    ("需求", "requirement"),
    ("关联任务", "task"),
    ("相关任务", "task"),
    ("任务", "task"),
    ("相关Bug", "relatedBugs"),
    ("相关用例", "relatedCases"),
    ("截止日期", "deadline"),
    ("创建时间", "created"),
    ("更新时间", "updated"),
    ("最后修改", "lastModified"),
    ("重现步骤", "steps"),
    ("详细描述", "description"),
    ("描述", "description"),
    ("关键词", "keywords"),
    ("解决方案", "solution"),
)

BUG_PROFILE = RecordProfile(
    record_type="bug",
    field_names=BUG_FIELDS,
    labels=BUG_LABELS,
    title_fallback_selectors=(".page-title", "h1"),
    area_selectors={
        "steps": (".steps", ".reproduce-steps", '[name*="steps"]'),
        "description": (".description", ".bug-description", '[name*="desc"]'),
    },
)

MARKET_BUG_FIELDS = (
    "title", "status", "priority", "severity", "assignedTo", "reporter",
    "product", "productLine", "productVersion", "productSystem", "project",
    "module", "version", "created", "updated", "region", "customerCode",
    "customerName", "expectedSolveDate", "problemLevel", "frontTechSupport",
    "defectDescription", "temporaryResponse", "solution", "defectAttribution",
    "defectType", "planFixTime", "problemAttributionTeam", "locationProblem",
    "confirmed", "solveDate", "closeDate", "submitPage",
)

MARKET_BUG_LABELS = (
    ("缺陷状态", "status"),
    ("缺陷类型", "defectType"),
    ("缺陷描述", "defectDescription"),
    ("缺陷归属", "defectAttribution"),
    ("状态", "status"),
    ("优先级", "priority"),
    ("严重程度", "severity"),
    ("指派给", "assignedTo"),
    ("由谁创建", "reporter"),
    ("产品线", "productLine"),
    ("所属产品", "product"),
    ("产品问题版本号", "productVersion"),
    ("产品系统组成", "productSystem"),
    ("所属项目", "project"),
    ("所属模块", "module"),
    ("所属大区", "region"),
    ("客户代码", "customerCode"),
    ("客户名称", "customerName"),
    ("期望解决日期", "expectedSolveDate"),
    ("问题级别", "problemLevel"),
    ("前方技术支持", "frontTechSupport"),
    ("临时应对", "temporaryResponse"),
    ("临时回复", "temporaryResponse"),
    ("解决方案", "solution"),
    ("计划修复时间", "planFixTime"),
    ("问题归属团队", "problemAttributionTeam"),
    ("定位问题", "locationProblem"),
    ("是否确认", "confirmed"),
    ("解决日期", "solveDate"),
    ("关闭日期", "closeDate"),
    ("创建日期", "created"),
    ("最后修改", "updated"),
    ("提交页面", "submitPage"),
    ("版本", "version"),
)

MARKET_BUG_PROFILE = RecordProfile(
    record_type="market_bug",
    field_names=MARKET_BUG_FIELDS,
    labels=MARKET_BUG_LABELS,
    title_fallback_selectors=(".page-title .text", ".page-title"),
    area_selectors={
        "defectDescription": (".defect-description", '[name*="desc"]'),
    },
    section_fields={
        "解决方案": "solution",
        "缺陷归属": "defectAttribution",
    },
    image_exclude_markers=EMBEDDED_IMAGE_MARKERS + ("theme/", "icon"),
    paired_cells=True,
    value_content_selector=".detail-content",
)

RECORD_PROFILES: Dict[str, RecordProfile] = {
    BUG_PROFILE.record_type: BUG_PROFILE,
    MARKET_BUG_PROFILE.record_type: MARKET_BUG_PROFILE,
}


# =============================================================================
# Listing layouts
# =============================================================================

MY_BUGS_LAYOUT = ListLayout(
    name="my_bugs",
    link_patterns=(r"m=bug&f=view&bugID=(\d+)", r"bug-view-(\d+)"),
    row_strategies=(
        RowStrategy("data-rows", "table tbody tr[data-id]", require_link=False),
        RowStrategy("linked-rows", "table tr"),
        RowStrategy("links", "a[href]", anchor=True),
    ),
    field_selectors={
        "severity": (".label-severity-custom", '[title*="严重程度"]', ".label-severity"),
        "priority": (".label-pri",),
        "status": (".status-bug", ".bug-status"),
    },
    # The "assigned to me" work page: ID, severity, pri, title, ... creator,
    # date, resolver, resolution.
    column_offsets={
        "reporter": 6,
        "resolver": 8,
        "resolution": 9,
    },
    title_column=3,
    empty_markers=("暂时没有Bug",),
)

MY_MARKET_BUGS_LAYOUT = ListLayout(
    name="my_market_bugs",
    link_patterns=(r"m=bugmarket&f=view&bugID=(\d+)", r"bugmarket-view-(\d+)"),
    row_strategies=(
        RowStrategy("data-rows", "table tbody tr[data-id]", require_link=False),
        RowStrategy("linked-rows", "table tr"),
        RowStrategy("links", "a[href]", anchor=True),
    ),
    field_selectors={
        "severity": (".label-severity-custom", '[title*="严重程度"]', ".label-severity"),
        "priority": (".label-pri",),
        "status": (".status-bugmarket", ".status-bug"),
    },
    # Unvalidated against a live market listing; override through the
    # profile file when the columns differ.
    column_offsets={
        "status": 4,
        "reporter": 5,
        "assigned_to": 6,
        "created": 7,
    },
    title_column=2,
    empty_markers=("暂时没有",),
)

LIST_LAYOUTS: Dict[str, ListLayout] = {
    MY_BUGS_LAYOUT.name: MY_BUGS_LAYOUT,
    MY_MARKET_BUGS_LAYOUT.name: MY_MARKET_BUGS_LAYOUT,
}


# =============================================================================
# Profile overrides
# =============================================================================

@dataclass
class ProfileSet:
    """The record profiles and list layouts in effect for one client."""

    records: Dict[str, RecordProfile] = field(default_factory=lambda: dict(RECORD_PROFILES))
    lists: Dict[str, ListLayout] = field(default_factory=lambda: dict(LIST_LAYOUTS))

    def record(self, record_type: str) -> RecordProfile:
        try:
            return self.records[record_type]
        except KeyError:
            raise ValueError(f"Unknown record type: {record_type}") from None

    def layout(self, name: str) -> ListLayout:
        try:
            return self.lists[name]
        except KeyError:
            raise ValueError(f"Unknown list layout: {name}") from None

    @classmethod
    def from_yaml(cls, path: Optional[Path]) -> "ProfileSet":
        """Built-in profiles with overrides from a YAML file applied.

        Labels listed in the file are tried before the built-in ones;
        column offsets are merged over the built-in offsets.
        """
        profiles = cls()
        if not path:
            return profiles

        path = Path(path)
        if not path.exists():
            logger.warning(f"Profile file {path} not found, using built-in profiles")
            return profiles

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        for record_type, overrides in (data.get("records") or {}).items():
            base = profiles.record(record_type)
            extra = tuple((str(label), str(name)) for label, name in overrides.get("labels") or [])
            profiles.records[record_type] = replace(base, labels=extra + base.labels)
            logger.info(f"Loaded {len(extra)} extra labels for {record_type}")

        for layout_name, overrides in (data.get("lists") or {}).items():
            base = profiles.layout(layout_name)
            offsets = dict(base.column_offsets)
            offsets.update({str(k): int(v) for k, v in (overrides.get("column_offsets") or {}).items()})
            title_column = overrides.get("title_column", base.title_column)
            profiles.lists[layout_name] = replace(
                base, column_offsets=offsets, title_column=title_column
            )
            logger.info(f"Loaded column offsets for {layout_name}: {offsets}")

        return profiles
