"""
narrative.py — Candidate Blurb Generator.

Produces several alternative text options for each report section from the
KPI values, so the operator can pick (or edit) the one that reads best.

The engine:
    1. Summarises the KPIs (average, strongest, weakest, movers)
    2. Picks the template variant per section from the average score
    3. Resolves every {placeholder} in each alternative
    4. Returns DraftSection objects with one SectionOption per alternative
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from practice_report.bundle import KPI, DraftSection, SectionOption

logger = logging.getLogger(__name__)

STRONG_THRESHOLD = 70.0
MODERATE_THRESHOLD = 40.0


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def _usd(value: float) -> str:
    """Format a dollar amount with no decimals, e.g. ``$162,548``."""
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.0f}"


def _pct(value: float, decimals: int = 0) -> str:
    """Format a 0-100 score as a percentage string (``72`` → ``'72%'``)."""
    return f"{value:.{decimals}f}%"


def _delta(value: float) -> str:
    """Signed change, e.g. ``+4`` / ``-2.5``."""
    text = f"{value:+.1f}"
    return text[:-2] if text.endswith(".0") else text


def _strength(avg_score: float) -> str:
    """Return 'strong', 'moderate' or 'weak' for an average KPI score."""
    if avg_score >= STRONG_THRESHOLD:
        return "strong"
    elif avg_score >= MODERATE_THRESHOLD:
        return "moderate"
    return "weak"


def _load_templates(templates_dir: str) -> dict[str, Any]:
    """Load section templates from narrative.yaml.

    Args:
        templates_dir: Directory containing narrative.yaml.

    Returns:
        Parsed template dictionary.
    """
    path = Path(templates_dir) / "narrative.yaml"
    with open(path, "r", encoding="utf-8") as fh:
        return yaml.safe_load(fh)


# ---------------------------------------------------------------------------
# KPI summary
# ---------------------------------------------------------------------------

def _summarise(kpis: list[KPI], client_name: str) -> dict[str, str]:
    """Collect the placeholder values shared by every template."""
    if not kpis:
        return {
            "client": client_name, "kpi_count": "0", "avg_score": _pct(0),
            "top_kpi": "n/a", "top_score": _pct(0),
            "weak_kpi": "n/a", "weak_score": _pct(0),
            "improving": "0", "declining": "0", "best_delta": "n/a",
        }

    avg = sum(k.value for k in kpis) / len(kpis)
    top = max(kpis, key=lambda k: k.value)
    weak = min(kpis, key=lambda k: k.value)
    with_delta = [k for k in kpis if k.delta is not None]
    best = max(with_delta, key=lambda k: k.delta) if with_delta else None

    return {
        "client": client_name,
        "kpi_count": str(len(kpis)),
        "avg_score": _pct(avg),
        "top_kpi": top.name,
        "top_score": _pct(top.value),
        "weak_kpi": weak.name,
        "weak_score": _pct(weak.value),
        "improving": str(sum(1 for k in with_delta if k.delta > 0)),
        "declining": str(sum(1 for k in with_delta if k.delta < 0)),
        "best_delta": f"{best.name} ({_delta(best.delta)})" if best else "n/a",
    }


def average_score(kpis: list[KPI]) -> float:
    return sum(k.value for k in kpis) / len(kpis) if kpis else 0.0


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

def generate_sections(
    kpis: list[KPI],
    templates_dir: str,
    client_name: str = "The practice",
) -> list[DraftSection]:
    """Generate draft sections with alternative blurbs from KPI values.

    Args:
        kpis: KPIs parsed from the upload.
        templates_dir: Directory containing narrative.yaml.
        client_name: Substituted for ``{client}``.

    Returns:
        One DraftSection per template section, in template order.
    """
    templates = _load_templates(templates_dir)
    values = _summarise(kpis, client_name)
    strength = _strength(average_score(kpis))

    sections = []
    for section_id, tmpl in templates.items():
        variants = tmpl.get(strength) or []
        options = [
            SectionOption(id=f"{section_id}-{idx + 1}", text=text.format(**values).strip())
            for idx, text in enumerate(variants)
        ]
        sections.append(DraftSection(
            id=section_id,
            title=tmpl.get("title", section_id.replace("_", " ").title()),
            options=options,
            group=tmpl.get("group", "general"),
        ))

    logger.info(
        "Narrative generated -- %d sections | strength=%s | %d options",
        len(sections), strength, sum(len(s.options) for s in sections),
    )
    return sections
