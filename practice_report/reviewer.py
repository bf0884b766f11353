"""
reviewer.py — Operator Review Session.

Holds the state of one review: the uploaded bundle (or drill-down table) and
the operator's chosen text per section. Every upload replaces both wholesale;
nothing is persisted.

Any failure (bad JSON, malformed CSV, PDF endpoint down) is raised as a
``ReviewError`` whose message is meant to be shown to the operator as-is.
"""

import logging
from pathlib import PurePath
from typing import Any, Optional

import requests

from practice_report.bundle import (
    BundleError,
    DraftBundle,
    bundle_from_json,
    bundle_from_kpi_csv,
    resolve_section_text,
)
from practice_report.config import DEFAULTS
from practice_report.csv_parser import UnterminatedQuoteError, parse_csv
from practice_report.drilldown import DrilldownError, DrilldownTable, build_drilldown_table
from practice_report.render import render_drilldown, render_report

logger = logging.getLogger(__name__)

KPI_CSV_REQUIRED = {"name", "value"}
KPI_CSV_COLUMNS = KPI_CSV_REQUIRED | {"delta"}
EMPTY_PREVIEW = "<p>Upload a JSON bundle or CSV to begin.</p>"


class ReviewError(RuntimeError):
    """User-facing failure during review; the message is shown in an alert."""


def _looks_like_kpi_csv(text: str) -> bool:
    """True when the first row is exactly a ``name,value[,delta]`` header."""
    grid = parse_csv(text)
    if not grid:
        return False
    headers = {cell.lower() for cell in grid[0]}
    return KPI_CSV_REQUIRED <= headers <= KPI_CSV_COLUMNS


class ReviewSession:
    """Single-operator review state (bundle or table, plus choices)."""

    def __init__(self, cfg: Optional[dict[str, Any]] = None):
        self.cfg = cfg or DEFAULTS
        self.bundle: Optional[DraftBundle] = None
        self.table: Optional[DrilldownTable] = None
        self.chosen: dict[str, str] = {}

    # -- upload --------------------------------------------------------------

    def upload(self, filename: str, content: str) -> str:
        """Load an uploaded file, replacing any previous state.

        Args:
            filename: Original file name; the extension selects the loader.
            content: Decoded file text.

        Returns:
            ``"bundle"`` or ``"drilldown"``.

        Raises:
            ReviewError: If the file cannot be loaded.
        """
        suffix = PurePath(filename).suffix.lower()
        strict = bool(self.cfg["csv"]["strict_quotes"])
        try:
            if suffix == ".json":
                bundle, table = bundle_from_json(content), None
            elif suffix == ".csv" and _looks_like_kpi_csv(content):
                bundle, table = bundle_from_kpi_csv(content, self.cfg), None
            elif suffix == ".csv":
                bundle, table = None, build_drilldown_table(content, strict=strict)
            else:
                raise ReviewError(f"Unsupported file type: {filename}")
        except (BundleError, DrilldownError, UnterminatedQuoteError) as exc:
            logger.warning("Upload of %s rejected: %s", filename, exc)
            raise ReviewError(str(exc)) from exc

        self.bundle, self.table, self.chosen = bundle, table, {}
        kind = "bundle" if bundle else "drilldown"
        logger.info("Review session loaded %s (%s)", filename, kind)
        return kind

    # -- selection -----------------------------------------------------------

    def choose(self, section_id: str, text: str) -> None:
        """Record the operator's text for a section (picked or hand-edited)."""
        if self.bundle is None:
            raise ReviewError("Upload a report bundle before choosing section text.")
        if section_id not in {s.id for s in self.bundle.sections}:
            raise ReviewError(f"Unknown section: {section_id}")
        self.chosen[section_id] = text

    def state(self) -> dict[str, Any]:
        """JSON-serialisable snapshot for the review page."""
        if self.bundle is not None:
            return {
                "kind": "bundle",
                "clientName": self.bundle.client_name,
                "date": self.bundle.date,
                "kpis": [
                    {"name": k.name, "value": k.value, "delta": k.delta}
                    for k in self.bundle.kpis
                ],
                "sections": [
                    {
                        "id": s.id,
                        "title": s.title,
                        "chartUrl": s.chart_url,
                        "options": [{"id": o.id, "text": o.text} for o in s.options],
                        "text": resolve_section_text(s, self.chosen),
                        "chosen": self.chosen.get(s.id),
                    }
                    for s in self.bundle.sections
                ],
            }
        if self.table is not None:
            return {
                "kind": "drilldown",
                "title": self.table.title,
                "columns": self.table.columns,
                "rowCount": len(self.table.rows),
            }
        return {"kind": None}

    # -- output --------------------------------------------------------------

    def preview_html(self) -> str:
        if self.bundle is not None:
            return render_report(self.bundle, self.chosen, self.cfg)
        if self.table is not None:
            return render_drilldown(self.table)
        return EMPTY_PREVIEW

    def export_pdf(self, pdf_url: Optional[str] = None, timeout: int = 120) -> bytes:
        """Send the preview HTML to the PDF endpoint and return the PDF.

        Raises:
            ReviewError: Nothing loaded, or the endpoint failed.
        """
        if self.bundle is None and self.table is None:
            raise ReviewError("Nothing to export -- upload a file first.")
        url = pdf_url or self.cfg["server"]["pdf_url"]
        try:
            resp = requests.post(url, json={"html": self.preview_html()}, timeout=timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.error("PDF export via %s failed: %s", url, exc)
            raise ReviewError(f"PDF export failed: {exc}") from exc

        logger.info("PDF exported -- %d bytes", len(resp.content))
        return resp.content
