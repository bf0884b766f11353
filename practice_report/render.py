"""
render.py — HTML Report Renderers.

Turns a DraftBundle (plus the operator's section choices) or a DrilldownTable
into a complete ``<!doctype html>`` document using the Jinja2 templates in
``practice_report/templates``. The HTML is print-ready: Letter page size,
page-break hints, and colours that survive ``print_background``.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from practice_report.bundle import (
    DraftBundle,
    group_sections,
    resolve_sections,
    resolve_summary_text,
)
from practice_report.config import DEFAULTS
from practice_report.drilldown import (
    DrilldownTable,
    cell_classes,
    cell_content,
    classify_column,
    normalize,
)

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
DOCTYPE = "<!doctype html>"


# ---------------------------------------------------------------------------
# Gradient progress bar
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProgressBar:
    """Geometry of a red → amber → green gradient bar."""
    percent: float  # 0-100, fill width
    label: str      # rounded, e.g. "72%"

    @property
    def mask(self) -> str:
        p = f"{self.percent:g}"
        return (
            f"linear-gradient(90deg,#000 0%,#000 {p}%,"
            f"transparent {p}%,transparent 100%)"
        )


def progress_bar(value: float, min_value: float = 0, max_value: float = 100) -> ProgressBar:
    """Clamp ``value`` into [min, max] and express it as a fill percentage.

    A degenerate range (``max == min``) is widened to ``min + 1``.
    """
    safe_max = min_value + 1 if max_value == min_value else max_value
    clamped = min(safe_max, max(min_value, value))
    fraction = (clamped - min_value) / (safe_max - min_value)
    return ProgressBar(percent=fraction * 100, label=f"{round(fraction * 100)}%")


# ---------------------------------------------------------------------------
# Jinja environment
# ---------------------------------------------------------------------------

def _usd(value: Optional[float]) -> str:
    if value is None:
        return "—"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.0f}"


def _number(value: float) -> str:
    return f"{value:g}"


_env: Optional[Environment] = None


def get_environment() -> Environment:
    global _env
    if _env is None:
        _env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(["html", "j2"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        _env.filters["usd"] = _usd
        _env.filters["number"] = _number
        _env.globals["progress_bar"] = progress_bar
    return _env


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------

def render_report(
    bundle: DraftBundle,
    chosen: Optional[dict[str, str]] = None,
    cfg: Optional[dict[str, Any]] = None,
) -> str:
    """Render the client report as a standalone HTML document.

    Args:
        bundle: Uploaded report data.
        chosen: Section id → operator-selected text.
        cfg: Configuration dict (call-out, closing and quote copy).

    Returns:
        HTML string starting with ``<!doctype html>``.
    """
    report_cfg = (cfg or DEFAULTS)["report"]
    sections = resolve_sections(bundle, chosen)
    grouped = group_sections(sections)
    by_id = {s.id: s for s in sections}

    summary_rows = [
        {"detail": d, "text": resolve_summary_text(d, by_id)}
        for d in bundle.summary_details
    ]

    html = get_environment().get_template("report.html.j2").render(
        client_name=bundle.client_name,
        date=bundle.date,
        kpis=bundle.kpis,
        questions=grouped["question"],
        general_sections=grouped["general"],
        growth_categories=bundle.growth_categories,
        summary_rows=summary_rows,
        copy=report_cfg,
    )
    logger.debug("Rendered report for %s (%d chars)", bundle.client_name, len(html))
    return DOCTYPE + html


def drilldown_rows(table: DrilldownTable) -> tuple[list, list[list[dict[str, Any]]]]:
    """Column metadata and per-cell render data for a drill-down table."""
    metas = [classify_column(c) for c in table.columns]
    grid = normalize(table)
    rows = []
    for r in range(len(grid.raw)):
        cells = []
        for c, meta in enumerate(metas):
            cell = grid.cell(r, c)
            content, as_badge = cell_content(meta, cell.display)
            cells.append({
                "classes": cell_classes(meta, cell.display),
                "raw": cell.raw,
                "content": content,
                "badge": as_badge,
            })
        rows.append(cells)
    return metas, rows


def render_drilldown(table: DrilldownTable) -> str:
    """Render a drill-down table as a standalone HTML document."""
    metas, rows = drilldown_rows(table)
    html = get_environment().get_template("drilldown.html.j2").render(
        title=table.title,
        columns=metas,
        rows=rows,
    )
    logger.debug("Rendered drill-down: %d columns x %d rows", len(metas), len(rows))
    return DOCTYPE + html
