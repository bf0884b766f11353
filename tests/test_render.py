"""
test_render.py — Unit tests for the HTML renderers.

Tests cover:
    - Gradient progress bar clamping and degenerate ranges
    - Client report layout (sections, categories, summary rows, escaping)
    - Drill-down table markup (blank placeholders, badges, raw values)
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from practice_report.bundle import bundle_from_dict
from practice_report.drilldown import NBSP, build_drilldown_table
from practice_report.render import (
    drilldown_rows,
    progress_bar,
    render_drilldown,
    render_report,
)

BUNDLE = {
    "clientName": "Bright Smile Dental",
    "date": "Jan 2025 – Jun 2025",
    "kpis": [{"name": "Case Acceptance", "value": 72, "delta": 4}],
    "sections": [
        {"id": "overview", "title": "Overview", "options": ["First overview", "Second overview"]},
        {
            "id": "opportunity",
            "title": "Where is the biggest opportunity?",
            "group": "question",
            "options": ["Hygiene reactivation"],
        },
    ],
    "growthCategories": [
        {"id": "g", "name": "Growth", "score": 62, "confidence": 80, "scored": 4, "total": 6},
    ],
    "summaryDetails": [
        {"id": "d1", "label": "G", "title": "Growth", "sectionId": "opportunity", "avgProfit": 42000},
        {"id": "d2", "label": "R", "title": "Retention", "text": "Own retention text"},
    ],
}

DRILLDOWN_CSV = (
    "Practice Report\n"
    "Growth Category,Category,KPI,Score\n"
    "G,New Patients,New Patient Count,80\n"
    "G,New Patients,Case Acceptance,70\n"
    "R,Hygiene,Recall Rate,65\n"
)


# ---------------------------------------------------------------------------
# Progress bar
# ---------------------------------------------------------------------------

class TestProgressBar:
    """Clamping and labelling of the gradient bar."""

    def test_midpoint(self):
        bar = progress_bar(50)
        assert bar.percent == 50
        assert bar.label == "50%"

    def test_clamped_high(self):
        assert progress_bar(150).percent == 100

    def test_clamped_low(self):
        bar = progress_bar(-5)
        assert bar.percent == 0
        assert bar.label == "0%"

    def test_custom_range(self):
        assert progress_bar(15, min_value=10, max_value=20).label == "50%"

    def test_degenerate_range_widened(self):
        bar = progress_bar(10.6, min_value=10, max_value=10)
        assert bar.percent == pytest.approx(60)
        assert bar.label == "60%"

    def test_mask_stops_at_fill(self):
        mask = progress_bar(25).mask
        assert "#000 25%" in mask
        assert "transparent 25%" in mask


# ---------------------------------------------------------------------------
# Client report
# ---------------------------------------------------------------------------

@pytest.fixture
def bundle():
    return bundle_from_dict(BUNDLE)


class TestRenderReport:
    """Assembled client report HTML."""

    def test_doctype_and_header(self, bundle):
        html = render_report(bundle)
        assert html.startswith("<!doctype html>")
        assert "Bright Smile Dental — Online Analysis" in html
        assert "Jan 2025 – Jun 2025" in html

    def test_first_option_by_default(self, bundle):
        html = render_report(bundle)
        assert "First overview" in html
        assert "Second overview" not in html

    def test_chosen_text_used(self, bundle):
        html = render_report(bundle, {"overview": "Operator wording"})
        assert "Operator wording" in html
        assert "First overview" not in html

    def test_question_block(self, bundle):
        html = render_report(bundle)
        assert "Key Questions" in html
        assert "Where is the biggest opportunity?" in html

    def test_category_row(self, bundle):
        html = render_report(bundle)
        assert '<span class="category-initial">G</span>rowth' in html
        assert "80%" in html
        assert "4 of 6" in html

    def test_summary_reuses_linked_section(self, bundle):
        html = render_report(bundle, {"opportunity": "Linked wording"})
        assert html.count("Linked wording") == 2
        assert "$42,000" in html
        assert "Own retention text" in html

    def test_summary_without_profit_shows_dash(self, bundle):
        assert '<td class="summary-profit">—</td>' in render_report(bundle)

    def test_profit_callout_not_escaped(self, bundle):
        assert "<strong>$162,548</strong>" in render_report(bundle)

    def test_user_text_escaped(self, bundle):
        html = render_report(bundle, {"overview": "<script>alert(1)</script>"})
        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html

    def test_no_categories_hides_table(self):
        html = render_report(bundle_from_dict({"clientName": "C"}))
        assert "Breakdown by Category" not in html
        assert "Key Questions" not in html


# ---------------------------------------------------------------------------
# Drill-down
# ---------------------------------------------------------------------------

class TestRenderDrilldown:
    """Drill-down table markup."""

    def test_title_and_headers(self):
        html = render_drilldown(build_drilldown_table(DRILLDOWN_CSV))
        assert html.startswith("<!doctype html>")
        assert "<h1>Practice Report</h1>" in html
        assert "<th>KPI</th>" in html
        assert "<th></th>" in html  # growth column header is hidden

    def test_widths_in_colgroup(self):
        html = render_drilldown(build_drilldown_table(DRILLDOWN_CSV))
        assert '<col style="width:30px" />' in html
        assert '<col style="width:310px" />' in html

    def test_repeated_badge_blanked_raw_kept(self):
        metas, rows = drilldown_rows(build_drilldown_table(DRILLDOWN_CSV))
        assert rows[0][0]["badge"] is True
        assert rows[0][0]["content"] == "G"
        assert rows[1][0]["badge"] is False
        assert rows[1][0]["content"] == NBSP
        assert rows[1][0]["raw"] == "G"
        assert "empty" in rows[1][0]["classes"]
        assert rows[2][0]["content"] == "R"

    def test_badge_markup(self):
        html = render_drilldown(build_drilldown_table(DRILLDOWN_CSV))
        assert '<span class="growth-badge">G</span>' in html
        assert '<span class="growth-badge">R</span>' in html

    def test_blank_cell_keeps_data_value(self):
        html = render_drilldown(build_drilldown_table(DRILLDOWN_CSV))
        assert 'data-value="New Patients">' + NBSP + "</td>" in html

    def test_untitled_table(self):
        html = render_drilldown(build_drilldown_table("A,B\n1,2"))
        assert "<h1>" not in html
        assert "<title>Drill-down</title>" in html
