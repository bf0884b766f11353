"""
pdf_builder.py — Summary PDF Generator.

Lays out the client report directly with ReportLab (platypus layout engine),
without a browser. Useful where Chromium is unavailable and as a compact
one-to-two page summary:

    Title + date
    Key KPIs           — two-column grid, gradient progress bar per KPI
    Key Questions      — shaded cards
    Breakdown by Category — score bar, confidence, KPIs scored
    Summary Details    — circular badge + resolved text + avg profit
    Additional Insights — general sections
    Closing text and quote

Everything is built in memory; the caller receives the PDF bytes.
"""

import io
import logging
from typing import Any, Optional
from xml.sax.saxutils import escape

import numpy as np

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import (
    BaseDocTemplate,
    Flowable,
    Frame,
    KeepTogether,
    PageTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
)

from practice_report.bundle import (
    DraftBundle,
    group_sections,
    resolve_sections,
    resolve_summary_text,
)
from practice_report.config import DEFAULTS

logger = logging.getLogger(__name__)

PAGE_W, PAGE_H = letter
MARGIN = 18 * mm
CONTENT_W = PAGE_W - 2 * MARGIN
KPI_COLUMNS = 2

_TYPOGRAPHIC = {
    "“": '"', "”": '"', "‘": "'", "’": "'", "–": "-", "—": "-", "↗": "",
}


def _hex(h: str):
    """Convert a hex colour string to ReportLab Color."""
    h = h.lstrip("#")
    r, g, b = int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)
    return colors.Color(r / 255, g / 255, b / 255)


def clean_text(text: str) -> str:
    """Replace typographic quotes and dashes with ASCII for built-in fonts."""
    for src, dst in _TYPOGRAPHIC.items():
        text = text.replace(src, dst)
    return text


def _para(text: str, style: ParagraphStyle) -> Paragraph:
    return Paragraph(escape(clean_text(text or "")), style)


# ---------------------------------------------------------------------------
# Gradient colours
# ---------------------------------------------------------------------------

def gradient_colors(stops: list[str], positions: np.ndarray) -> list[colors.Color]:
    """Interpolate evenly spaced hex colour stops at ``positions`` in [0, 1]."""
    rgb = np.array([[int(s.lstrip("#")[i:i + 2], 16) / 255 for i in (0, 2, 4)] for s in stops])
    xp = np.linspace(0.0, 1.0, len(stops))
    t = np.clip(positions, 0.0, 1.0)
    channels = [np.interp(t, xp, rgb[:, ch]) for ch in range(3)]
    return [colors.Color(r, g, b) for r, g, b in zip(*channels)]


class GradientBar(Flowable):
    """Horizontal progress bar filled with a red → amber → green gradient.

    The gradient spans the whole track and only the filled part is painted,
    matching the masked CSS bar of the HTML report.
    """

    def __init__(self, value: float, width: float, height: float, brand: dict):
        super().__init__()
        self.value = value
        self.bar_width = width
        self.height = height
        self.brand = brand

    def wrap(self, availWidth, availHeight):
        self.width = min(self.bar_width, availWidth)
        return self.width, self.height

    def draw(self):
        c = self.canv
        c.setFillColor(_hex(self.brand["track"]))
        c.rect(0, 0, self.width, self.height, stroke=0, fill=1)

        fill_w = self.width * float(np.clip(self.value / 100.0, 0.0, 1.0))
        if fill_w <= 0.2 * mm:
            return
        segments = max(80, int(fill_w / (1.5 * mm)))
        seg_w = fill_w / segments
        starts = np.arange(segments) * seg_w
        shades = gradient_colors(self.brand["gradient"], (starts + seg_w / 2) / self.width)
        for x, shade in zip(starts, shades):
            c.setFillColor(shade)
            # Slight overlap hides hairline seams between segments.
            c.rect(x, 0, min(seg_w + 0.3, fill_w - x), self.height, stroke=0, fill=1)


class Badge(Flowable):
    """Filled circle with a short centred label."""

    def __init__(self, label: str, diameter: float, brand: dict):
        super().__init__()
        self.label = clean_text(label.strip()) or "•"
        self.diameter = diameter
        self.brand = brand

    def wrap(self, availWidth, availHeight):
        return self.diameter, self.diameter

    def draw(self):
        c = self.canv
        r = self.diameter / 2
        c.setFillColor(_hex(self.brand["badge"]))
        c.circle(r, r, r, stroke=0, fill=1)
        c.setFillColor(_hex(self.brand["badge_text"]))
        c.setFont("Helvetica-Bold", 10)
        c.drawCentredString(r, r - 3.5, self.label)


# ---------------------------------------------------------------------------
# Stylesheet
# ---------------------------------------------------------------------------

def _build_styles(brand: dict) -> dict[str, ParagraphStyle]:
    """Create all paragraph styles used in the summary.

    Args:
        brand: Brand colour dict from config.

    Returns:
        Dict of named ParagraphStyle objects.
    """
    text_col = _hex(brand["text"])
    muted = _hex(brand["muted"])

    styles = {}
    styles["title"] = ParagraphStyle(
        "title", fontName="Helvetica-Bold", fontSize=18, leading=22, textColor=text_col,
    )
    styles["date"] = ParagraphStyle(
        "date", fontName="Helvetica", fontSize=11, leading=14, textColor=muted, spaceAfter=8,
    )
    styles["heading"] = ParagraphStyle(
        "heading", fontName="Helvetica-Bold", fontSize=13, leading=16,
        textColor=text_col, spaceBefore=6, spaceAfter=4,
    )
    styles["card_title"] = ParagraphStyle(
        "card_title", fontName="Helvetica-Bold", fontSize=11, leading=13,
        textColor=text_col, spaceAfter=2,
    )
    styles["body"] = ParagraphStyle(
        "body", fontName="Helvetica", fontSize=10, leading=12.5, textColor=text_col,
        alignment=TA_LEFT, spaceAfter=4,
    )
    styles["note"] = ParagraphStyle(
        "note", fontName="Helvetica", fontSize=8.5, leading=11, textColor=muted,
        alignment=TA_CENTER,
    )
    styles["cell"] = ParagraphStyle(
        "cell", fontName="Helvetica", fontSize=10, leading=12, textColor=text_col,
        alignment=TA_CENTER,
    )
    styles["cell_left"] = ParagraphStyle(
        "cell_left", parent=styles["cell"], fontName="Helvetica-Bold", alignment=TA_LEFT,
    )
    styles["cell_header"] = ParagraphStyle(
        "cell_header", parent=styles["cell"], fontName="Helvetica-Bold",
    )
    styles["profit"] = ParagraphStyle(
        "profit", fontName="Helvetica-Bold", fontSize=10, leading=12,
        textColor=_hex(brand["badge_text"]), alignment=TA_RIGHT,
    )
    styles["quote"] = ParagraphStyle(
        "quote", fontName="Helvetica-Oblique", fontSize=10.5, leading=15, textColor=text_col,
    )
    return styles


def _footer(client_name: str, brand: dict):
    """Page callback drawing the running footer."""

    def draw(canvas, doc):
        canvas.saveState()
        canvas.setStrokeColor(_hex(brand["track"]))
        canvas.setLineWidth(0.5)
        canvas.line(MARGIN, 12 * mm, PAGE_W - MARGIN, 12 * mm)
        canvas.setFont("Helvetica", 7.5)
        canvas.setFillColor(colors.grey)
        canvas.drawString(MARGIN, 8 * mm, clean_text(f"{client_name} - Summary"))
        canvas.drawRightString(PAGE_W - MARGIN, 8 * mm, f"Page {doc.page}")
        canvas.restoreState()

    return draw


# ---------------------------------------------------------------------------
# Section builders
# ---------------------------------------------------------------------------

def _kpi_grid(bundle: DraftBundle, styles: dict, brand: dict) -> list:
    if not bundle.kpis:
        return []
    col_w = CONTENT_W / KPI_COLUMNS
    bar_w = col_w - 8 * mm
    cells = [
        [_para(k.name, styles["card_title"]), GradientBar(k.value, bar_w, 5 * mm, brand)]
        for k in bundle.kpis
    ]
    rows = [cells[i:i + KPI_COLUMNS] for i in range(0, len(cells), KPI_COLUMNS)]
    if len(rows[-1]) < KPI_COLUMNS:
        rows[-1] += [""] * (KPI_COLUMNS - len(rows[-1]))

    table = Table(rows, colWidths=[col_w] * KPI_COLUMNS)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), _hex(brand["light"])),
        ("GRID", (0, 0), (-1, -1), 3, colors.white),
        ("TOPPADDING", (0, 0), (-1, -1), 5),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
        ("LEFTPADDING", (0, 0), (-1, -1), 4 * mm),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    return [_para("Key KPIs", styles["heading"]), table, Spacer(1, 4 * mm)]


def _question_cards(questions: list, styles: dict, brand: dict) -> list:
    if not questions:
        return []
    story = [_para("Key Questions", styles["heading"])]
    for section in questions:
        card = Table(
            [[[_para(section.title, styles["card_title"]), _para(section.text, styles["body"])]]],
            colWidths=[CONTENT_W],
        )
        card.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, -1), _hex(brand["light"])),
            ("LEFTPADDING", (0, 0), (-1, -1), 4 * mm),
            ("RIGHTPADDING", (0, 0), (-1, -1), 4 * mm),
            ("TOPPADDING", (0, 0), (-1, -1), 6),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ]))
        story += [KeepTogether(card), Spacer(1, 2 * mm)]
    story.append(Spacer(1, 3 * mm))
    return story


def _category_table(bundle: DraftBundle, styles: dict, brand: dict, note: str) -> list:
    if not bundle.growth_categories:
        return []
    fracs = [0.36, 0.28, 0.16, 0.20]
    widths = [CONTENT_W * f for f in fracs]
    data = [[
        _para("Category", ParagraphStyle("h_left", parent=styles["cell_header"], alignment=TA_LEFT)),
        _para("Score", styles["cell_header"]),
        _para("Confidence", styles["cell_header"]),
        _para("KPIs Scored", styles["cell_header"]),
    ]]
    for cat in bundle.growth_categories:
        data.append([
            _para(cat.name, styles["cell_left"]),
            GradientBar(cat.score, widths[1] - 6 * mm, 4 * mm, brand),
            _para(f"{cat.confidence:.0f}%", styles["cell"]),
            _para(f"{cat.scored} of {cat.total}", styles["cell"]),
        ])

    table = Table(data, colWidths=widths, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), _hex(brand["light"])),
        ("LINEBELOW", (0, 0), (-1, -1), 0.4, _hex(brand["track"])),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("ALIGN", (1, 1), (1, -1), "CENTER"),
        ("TOPPADDING", (0, 0), (-1, -1), 5),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
    ]))
    story = [_para("Breakdown by Category", styles["heading"]), table]
    if note:
        story += [Spacer(1, 2 * mm), _para(note, styles["note"])]
    story.append(Spacer(1, 4 * mm))
    return story


def _summary_list(summary_rows: list, styles: dict, brand: dict) -> list:
    if not summary_rows:
        return []
    badge_d = 7 * mm
    data = [
        [Badge(detail.label, badge_d, brand),
         _para(text, styles["body"]),
         _para(f"${detail.avg_profit:,.0f}" if detail.avg_profit is not None else "-",
               styles["profit"])]
        for detail, text in summary_rows
    ]
    table = Table(data, colWidths=[badge_d + 4 * mm, CONTENT_W * 0.72, None])
    table.setStyle(TableStyle([
        ("LINEBELOW", (0, 0), (-1, -1), 0.25, _hex(brand["track"])),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    return [_para("Summary Details", styles["heading"]), table, Spacer(1, 4 * mm)]


def _general_sections(sections: list, styles: dict) -> list:
    if not sections:
        return []
    story = [_para("Additional Insights", styles["heading"])]
    for section in sections:
        story.append(KeepTogether([
            _para(section.title, styles["card_title"]),
            _para(section.text, styles["body"]),
        ]))
    story.append(Spacer(1, 4 * mm))
    return story


def _closing(report_cfg: dict, styles: dict) -> list:
    story = []
    if report_cfg.get("closing"):
        story.append(_para(report_cfg["closing"], styles["body"]))
    if report_cfg.get("quote"):
        quote = f"\"{report_cfg['quote']}\""
        if report_cfg.get("quote_author"):
            quote += f"  {report_cfg['quote_author']}"
        story += [Spacer(1, 2 * mm), _para(quote, styles["quote"])]
    return story


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def build_summary_pdf(
    bundle: DraftBundle,
    chosen: Optional[dict[str, str]] = None,
    cfg: Optional[dict[str, Any]] = None,
) -> bytes:
    """Assemble the summary PDF for a bundle and the operator's choices.

    Args:
        bundle: Uploaded report data.
        chosen: Section id → selected text.
        cfg: Configuration dict (brand colours and closing copy).

    Returns:
        PDF document bytes.
    """
    report_cfg = (cfg or DEFAULTS)["report"]
    brand = report_cfg["brand"]
    styles = _build_styles(brand)

    sections = resolve_sections(bundle, chosen)
    grouped = group_sections(sections)
    by_id = {s.id: s for s in sections}
    summary_rows = [(d, resolve_summary_text(d, by_id)) for d in bundle.summary_details]

    buf = io.BytesIO()
    doc = BaseDocTemplate(
        buf,
        pagesize=letter,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=MARGIN,
        bottomMargin=MARGIN,
        title=clean_text(f"{bundle.client_name} - Summary"),
    )
    frame = Frame(MARGIN, MARGIN, CONTENT_W, PAGE_H - 2 * MARGIN)
    doc.addPageTemplates([
        PageTemplate(id="Content", frames=[frame], onPage=_footer(bundle.client_name, brand)),
    ])

    story = [
        _para(f"{bundle.client_name} - Online Analysis", styles["title"]),
        _para(bundle.date, styles["date"]),
    ]
    story += _kpi_grid(bundle, styles, brand)
    story += _question_cards(grouped["question"], styles, brand)
    story += _category_table(bundle, styles, brand, report_cfg.get("category_note", ""))
    story += _summary_list(summary_rows, styles, brand)
    story += _general_sections(grouped["general"], styles)
    story += _closing(report_cfg, styles)

    doc.build(story)
    pdf_bytes = buf.getvalue()
    logger.info(
        "Summary PDF built for %s -- %d pages | %d bytes",
        bundle.client_name, doc.page, len(pdf_bytes),
    )
    return pdf_bytes
