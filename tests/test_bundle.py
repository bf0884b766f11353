"""
test_bundle.py — Unit tests for the report data model and loaders.

Tests cover:
    - Chosen-text / first-option resolution
    - Summary rows reusing linked section text
    - Section grouping
    - JSON bundle parsing and validation errors
    - KPI CSV loading via pandas
"""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from practice_report.bundle import (
    BundleError,
    DraftBundle,
    DraftSection,
    ReportSection,
    SectionOption,
    SummaryDetail,
    bundle_from_dict,
    bundle_from_json,
    bundle_from_kpi_csv,
    group_sections,
    read_kpi_frame,
    resolve_section_text,
    resolve_sections,
    resolve_summary_text,
)
from practice_report.config import DEFAULTS


def _section(sid="overview", texts=("First", "Second"), group="general"):
    return DraftSection(
        id=sid,
        title=sid.title(),
        options=[SectionOption(id=f"{sid}-{i}", text=t) for i, t in enumerate(texts, 1)],
        group=group,
    )


SAMPLE_BUNDLE = {
    "clientName": "Bright Smile Dental",
    "period": {"start": "Jan 2025", "end": "Jun 2025"},
    "kpis": [
        {"name": "Case Acceptance", "value": 72, "delta": 4},
        {"name": "Recall Rate", "value": 55},
    ],
    "sections": [
        {"id": "overview", "title": "Overview", "options": ["Option A", "Option B"]},
        {
            "id": "opportunity",
            "title": "Where is the biggest opportunity?",
            "group": "question",
            "options": [{"id": "o1", "text": "Hygiene reactivation"}],
        },
    ],
    "growthCategories": [
        {"id": "g", "name": "Growth", "score": 62, "confidence": 80, "scored": 4, "total": 6},
    ],
    "summaryDetails": [
        {"id": "d1", "label": "G", "title": "Growth", "sectionId": "opportunity", "avgProfit": 42000},
        {"id": "d2", "label": "R", "title": "Retention", "text": "Own text"},
    ],
}


# ---------------------------------------------------------------------------
# Text resolution
# ---------------------------------------------------------------------------

class TestResolveSectionText:
    """Chosen text, else first option, else empty."""

    def test_chosen_wins(self):
        assert resolve_section_text(_section(), {"overview": "Mine"}) == "Mine"

    def test_first_option_fallback(self):
        assert resolve_section_text(_section(), {}) == "First"

    def test_empty_when_no_options(self):
        assert resolve_section_text(_section(texts=()), {}) == ""

    def test_chosen_empty_string_is_respected(self):
        assert resolve_section_text(_section(), {"overview": ""}) == ""

    def test_other_section_choice_ignored(self):
        assert resolve_section_text(_section(), {"other": "Mine"}) == "First"

    def test_resolve_sections_keeps_order_and_group(self):
        bundle = DraftBundle(
            client_name="C", date="",
            sections=[_section("a"), _section("b", group="question")],
        )
        resolved = resolve_sections(bundle, {"b": "Picked"})
        assert [s.id for s in resolved] == ["a", "b"]
        assert resolved[1].text == "Picked"
        assert resolved[1].group == "question"


class TestResolveSummaryText:
    """Summary rows reuse narrative text from linked sections."""

    def _by_id(self, **texts):
        return {sid: ReportSection(id=sid, title=sid, text=t) for sid, t in texts.items()}

    def test_linked_section_text(self):
        detail = SummaryDetail(id="d", label="G", title="t", section_id="s", text="own")
        assert resolve_summary_text(detail, self._by_id(s="linked")) == "linked"

    def test_falls_back_to_detail_id(self):
        detail = SummaryDetail(id="s", label="G", title="t")
        assert resolve_summary_text(detail, self._by_id(s="by id")) == "by id"

    def test_empty_linked_text_uses_own(self):
        detail = SummaryDetail(id="d", label="G", title="t", section_id="s", text="own")
        assert resolve_summary_text(detail, self._by_id(s="")) == "own"

    def test_nothing_available(self):
        detail = SummaryDetail(id="d", label="G", title="t")
        assert resolve_summary_text(detail, {}) == ""


class TestGroupSections:

    def test_unknown_group_is_general(self):
        sections = [
            ReportSection(id="q", title="Q", text="", group="question"),
            ReportSection(id="x", title="X", text="", group="sidebar"),
        ]
        grouped = group_sections(sections)
        assert [s.id for s in grouped["question"]] == ["q"]
        assert [s.id for s in grouped["general"]] == ["x"]
        assert grouped["summary"] == []


# ---------------------------------------------------------------------------
# JSON loader
# ---------------------------------------------------------------------------

class TestBundleFromJson:
    """camelCase JSON → DraftBundle."""

    def test_full_bundle(self):
        bundle = bundle_from_json(json.dumps(SAMPLE_BUNDLE))
        assert bundle.client_name == "Bright Smile Dental"
        assert bundle.date == "Jan 2025 – Jun 2025"
        assert [k.name for k in bundle.kpis] == ["Case Acceptance", "Recall Rate"]
        assert bundle.kpis[0].delta == 4.0
        assert bundle.kpis[1].delta is None
        assert bundle.growth_categories[0].scored == 4
        assert bundle.summary_details[0].avg_profit == 42000.0

    def test_string_options_get_ids(self):
        bundle = bundle_from_dict(SAMPLE_BUNDLE)
        assert [o.id for o in bundle.sections[0].options] == ["overview-1", "overview-2"]
        assert bundle.sections[1].options[0].id == "o1"
        assert bundle.sections[1].group == "question"

    def test_explicit_date_wins(self):
        bundle = bundle_from_dict({"clientName": "C", "date": "March 2025"})
        assert bundle.date == "March 2025"
        assert bundle.kpis == []

    def test_invalid_json(self):
        with pytest.raises(BundleError, match="Invalid JSON"):
            bundle_from_json("{not json")

    def test_missing_client_name(self):
        with pytest.raises(BundleError, match="clientName"):
            bundle_from_dict({"kpis": []})

    def test_non_numeric_kpi_value(self):
        with pytest.raises(BundleError):
            bundle_from_dict({"clientName": "C", "kpis": [{"name": "x", "value": "high"}]})

    def test_kpis_not_a_list(self):
        with pytest.raises(BundleError, match="expected a list"):
            bundle_from_dict({"clientName": "C", "kpis": {"name": "x"}})

    def test_top_level_array_rejected(self):
        with pytest.raises(BundleError):
            bundle_from_json("[]")

    def test_summary_fields_coerced_to_text(self):
        bundle = bundle_from_dict({
            "clientName": "C",
            "sections": [{"id": "s", "chartUrl": 7, "options": []}],
            "summaryDetails": [{"id": "d", "label": "A", "title": "t", "sectionId": 3, "text": 5}],
        })
        detail = bundle.summary_details[0]
        assert detail.text == "5"
        assert detail.section_id == "3"
        assert bundle.sections[0].chart_url == "7"

    def test_summary_missing_fields_stay_none(self):
        detail = bundle_from_dict(SAMPLE_BUNDLE).summary_details[1]
        assert detail.section_id is None
        assert detail.avg_profit is None

    def test_unknown_group_normalised(self):
        bundle = bundle_from_dict({
            "clientName": "C",
            "sections": [{"id": "s", "group": "sidebar", "options": []}],
        })
        assert bundle.sections[0].group == "general"


# ---------------------------------------------------------------------------
# KPI CSV loader
# ---------------------------------------------------------------------------

class TestKpiCsv:
    """name,value,delta CSV → bundle with generated sections."""

    def test_frame_columns_normalised(self):
        df = read_kpi_frame("Name , Value,Delta\nRecall,55,-2\n")
        assert list(df.columns) == ["name", "value", "delta"]
        assert df["value"].iloc[0] == 55

    def test_missing_value_column(self):
        with pytest.raises(BundleError, match="value"):
            read_kpi_frame("name,score\nx,1\n")

    def test_empty_file(self):
        with pytest.raises(BundleError):
            read_kpi_frame("")

    def test_bundle_from_kpi_csv(self):
        bundle = bundle_from_kpi_csv(
            "\ufeffname,value,delta\nCase Acceptance,72,4\nRecall Rate,n/a,\n", DEFAULTS
        )
        assert bundle.client_name == DEFAULTS["report"]["client_name"]
        assert [k.value for k in bundle.kpis] == [72.0, 0.0]
        assert bundle.kpis[0].delta == 4.0
        assert bundle.kpis[1].delta is None
        assert bundle.sections
        assert all(s.options for s in bundle.sections)
