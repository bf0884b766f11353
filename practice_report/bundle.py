"""
bundle.py — Report Data Model.

Plain value records describing one client's report and the helpers that
assemble them:

    DraftBundle      — uploaded JSON (or KPI CSV) before operator review
    DraftSection     — a report section offering several candidate blurbs
    ReportSection    — a section with its final text resolved
    GrowthCategory   — one row of the category breakdown table
    SummaryDetail    — one summary row, optionally reusing a section's text

The "chosen text per section, else first option" rule is expressed as small
composable functions so the renderers and the review session share it.
"""

import io
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import pandas as pd

logger = logging.getLogger(__name__)

SECTION_GROUPS = ("question", "summary", "general")


class BundleError(ValueError):
    """Uploaded bundle could not be parsed into a DraftBundle."""


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass
class KPI:
    name: str
    value: float
    delta: Optional[float] = None


@dataclass
class SectionOption:
    id: str
    text: str


@dataclass
class DraftSection:
    """A report section before the operator has picked its text."""
    id: str
    title: str
    options: list[SectionOption] = field(default_factory=list)
    chart_url: Optional[str] = None
    group: str = "general"


@dataclass
class ReportSection:
    """A report section with its final text."""
    id: str
    title: str
    text: str
    chart_url: Optional[str] = None
    group: str = "general"


@dataclass
class GrowthCategory:
    id: str
    name: str
    score: float
    confidence: float
    scored: int
    total: int


@dataclass
class SummaryDetail:
    id: str
    label: str
    title: str
    section_id: Optional[str] = None
    text: Optional[str] = None
    avg_profit: Optional[float] = None


@dataclass
class DraftBundle:
    """Complete report input for one client."""
    client_name: str
    date: str
    kpis: list[KPI] = field(default_factory=list)
    sections: list[DraftSection] = field(default_factory=list)
    growth_categories: list[GrowthCategory] = field(default_factory=list)
    summary_details: list[SummaryDetail] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Section text resolution
# ---------------------------------------------------------------------------

def chosen_text(chosen: dict[str, str], section_id: str) -> Optional[str]:
    """Operator's explicit choice for a section, if any."""
    return chosen.get(section_id)


def first_option_text(section: DraftSection) -> Optional[str]:
    """Text of the section's first candidate option, if any."""
    return section.options[0].text if section.options else None


def resolve_section_text(section: DraftSection, chosen: dict[str, str]) -> str:
    """Chosen text, else the first option, else an empty string."""
    for candidate in (chosen_text(chosen, section.id), first_option_text(section)):
        if candidate is not None:
            return candidate
    return ""


def resolve_sections(
    bundle: DraftBundle,
    chosen: Optional[dict[str, str]] = None,
) -> list[ReportSection]:
    """Resolve every draft section of a bundle into its final text."""
    chosen = chosen or {}
    return [
        ReportSection(
            id=section.id,
            title=section.title,
            text=resolve_section_text(section, chosen),
            chart_url=section.chart_url,
            group=section.group or "general",
        )
        for section in bundle.sections
    ]


def resolve_summary_text(
    detail: SummaryDetail,
    sections_by_id: dict[str, ReportSection],
) -> str:
    """Text for a summary row.

    The linked section (via ``section_id``, else the detail's own id) wins
    when it has text; otherwise the detail's own text is used.
    """
    linked = (detail.section_id and sections_by_id.get(detail.section_id)) \
        or sections_by_id.get(detail.id)
    if linked and linked.text:
        return linked.text
    return detail.text or ""


def group_sections(sections: list[ReportSection]) -> dict[str, list[ReportSection]]:
    """Split resolved sections into question / summary / general buckets."""
    grouped: dict[str, list[ReportSection]] = {g: [] for g in SECTION_GROUPS}
    for section in sections:
        group = section.group if section.group in SECTION_GROUPS else "general"
        grouped[group].append(section)
    return grouped


# ---------------------------------------------------------------------------
# JSON loader
# ---------------------------------------------------------------------------

def _require(obj: dict[str, Any], key: str, where: str) -> Any:
    if key not in obj or obj[key] is None:
        raise BundleError(f"{where}: missing required field '{key}'")
    return obj[key]


def _as_list(value: Any, where: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise BundleError(f"{where}: expected a list")
    return value


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _format_period(period: Any) -> str:
    if isinstance(period, dict):
        start, end = period.get("start", ""), period.get("end", "")
        return f"{start} – {end}" if start and end else (start or end or "")
    return str(period or "")


def _parse_section(raw: dict[str, Any]) -> DraftSection:
    sid = str(_require(raw, "id", "section"))
    options = []
    for idx, opt in enumerate(_as_list(raw.get("options"), f"section '{sid}' options")):
        if isinstance(opt, str):
            options.append(SectionOption(id=f"{sid}-{idx + 1}", text=opt))
        else:
            options.append(SectionOption(
                id=str(opt.get("id", f"{sid}-{idx + 1}")),
                text=str(_require(opt, "text", f"section '{sid}' option")),
            ))
    group = raw.get("group") or "general"
    if group not in SECTION_GROUPS:
        logger.warning("Section %s has unknown group %r -- treating as general", sid, group)
        group = "general"
    return DraftSection(
        id=sid,
        title=str(raw.get("title", sid)),
        options=options,
        chart_url=_optional_str(raw.get("chartUrl")),
        group=group,
    )


def bundle_from_dict(data: dict[str, Any]) -> DraftBundle:
    """Build a DraftBundle from the camelCase JSON shape.

    Raises:
        BundleError: If a required field is missing or has the wrong type.
    """
    if not isinstance(data, dict):
        raise BundleError("bundle: expected a JSON object")
    try:
        kpis = [
            KPI(
                name=str(_require(k, "name", "kpi")),
                value=float(_require(k, "value", "kpi")),
                delta=float(k["delta"]) if k.get("delta") is not None else None,
            )
            for k in _as_list(data.get("kpis"), "kpis")
        ]
        categories = [
            GrowthCategory(
                id=str(c.get("id", c.get("name", idx))),
                name=str(_require(c, "name", "growthCategory")),
                score=float(c.get("score", 0)),
                confidence=float(c.get("confidence", 0)),
                scored=int(c.get("scored", 0)),
                total=int(c.get("total", 0)),
            )
            for idx, c in enumerate(_as_list(data.get("growthCategories"), "growthCategories"))
        ]
        details = [
            SummaryDetail(
                id=str(_require(d, "id", "summaryDetail")),
                label=str(d.get("label", "")),
                title=str(d.get("title", "")),
                section_id=_optional_str(d.get("sectionId")),
                text=_optional_str(d.get("text")),
                avg_profit=float(d["avgProfit"]) if d.get("avgProfit") is not None else None,
            )
            for d in _as_list(data.get("summaryDetails"), "summaryDetails")
        ]
        sections = [_parse_section(s) for s in _as_list(data.get("sections"), "sections")]
    except BundleError:
        raise
    except (TypeError, ValueError, AttributeError) as exc:
        raise BundleError(f"bundle: invalid value ({exc})") from exc

    date = data.get("date") or _format_period(data.get("period"))
    return DraftBundle(
        client_name=str(_require(data, "clientName", "bundle")),
        date=str(date),
        kpis=kpis,
        sections=sections,
        growth_categories=categories,
        summary_details=details,
    )


def bundle_from_json(text: str) -> DraftBundle:
    """Parse an uploaded JSON document into a DraftBundle."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise BundleError(f"Invalid JSON: {exc.msg} (line {exc.lineno})") from exc
    bundle = bundle_from_dict(data)
    logger.info(
        "Bundle loaded -- client=%s | %d KPIs | %d sections",
        bundle.client_name, len(bundle.kpis), len(bundle.sections),
    )
    return bundle


# ---------------------------------------------------------------------------
# KPI CSV loader
# ---------------------------------------------------------------------------

def read_kpi_frame(text: str) -> pd.DataFrame:
    """Read a ``name,value[,delta]`` CSV with numeric typing.

    Raises:
        BundleError: If the file is unreadable or lacks name/value columns.
    """
    try:
        df = pd.read_csv(io.StringIO(text.lstrip("\ufeff")), skip_blank_lines=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise BundleError(f"Invalid KPI CSV: {exc}") from exc

    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = {"name", "value"} - set(df.columns)
    if missing:
        raise BundleError(f"KPI CSV missing column(s): {', '.join(sorted(missing))}")

    df = df.dropna(subset=["name"])
    df["value"] = pd.to_numeric(df["value"], errors="coerce")
    if "delta" in df.columns:
        df["delta"] = pd.to_numeric(df["delta"], errors="coerce")
    return df


def kpis_from_frame(df: pd.DataFrame) -> list[KPI]:
    kpis = []
    for row in df.itertuples(index=False):
        delta = getattr(row, "delta", None)
        kpis.append(KPI(
            name=str(row.name).strip(),
            value=0.0 if pd.isna(row.value) else float(row.value),
            delta=None if delta is None or pd.isna(delta) else float(delta),
        ))
    return kpis


def bundle_from_kpi_csv(text: str, cfg: dict[str, Any]) -> DraftBundle:
    """Build a bundle from a KPI CSV, generating candidate section blurbs.

    Args:
        text: CSV text with ``name``, ``value`` and optional ``delta`` columns.
        cfg: Configuration dict (client defaults, templates_dir).

    Returns:
        DraftBundle with auto-generated sections.
    """
    from practice_report.narrative import generate_sections

    kpis = kpis_from_frame(read_kpi_frame(text))
    report_cfg = cfg["report"]
    bundle = DraftBundle(
        client_name=report_cfg["client_name"],
        date=_format_period(report_cfg.get("period")),
        kpis=kpis,
        sections=generate_sections(
            kpis, cfg["paths"]["templates_dir"], report_cfg["client_name"]
        ),
    )
    logger.info("KPI CSV loaded -- %d KPIs", len(kpis))
    return bundle
