"""
drilldown.py — Drill-down Table Builder and Display Normalizer.

Turns an uploaded scoring CSV into a ``DrilldownTable``:

    1. Optional one-cell title row
    2. Header row (blank headers become "Column N")
    3. Data rows, filtered on a "Score" column when one exists

For rendering, ``normalize`` blanks out a cell whose value repeats the cell
directly above it (visual grouping of category / KPI labels) while keeping the
raw value available, and ``classify_column`` maps each header onto a
presentation role (badge column, indented hierarchy, detail column).
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from practice_report.csv_parser import parse_csv

logger = logging.getLogger(__name__)

NBSP = "\u00a0"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class DrilldownError(ValueError):
    """Base class for drill-down table build failures."""


class EmptyInputError(DrilldownError):
    """The CSV contained no non-blank rows."""


class MissingHeaderError(DrilldownError):
    """No header row remained after title extraction."""


class NoDataRowsError(DrilldownError):
    """No data rows remained after the header (and the score filter)."""


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DrilldownTable:
    """Flattened per-KPI scoring table built from one upload."""
    title: Optional[str]
    columns: list[str]
    rows: list[list[str]]


@dataclass(frozen=True)
class ColumnMeta:
    """Rendering hint derived from a column header."""
    label: str
    header_label: str
    width: str
    css_class: str
    is_growth: bool = False


@dataclass(frozen=True)
class DisplayCell:
    raw: str
    display: str


@dataclass(frozen=True)
class DisplayGrid:
    """Raw cell values alongside the values actually rendered."""
    raw: list[list[str]]
    display: list[list[str]]

    def cell(self, row: int, col: int) -> DisplayCell:
        return DisplayCell(self.raw[row][col], self.display[row][col])


# ---------------------------------------------------------------------------
# Table builder
# ---------------------------------------------------------------------------

def _is_title_row(row: list[str]) -> bool:
    return len(row) <= 1 or all(cell == "" for cell in row[1:])


def _fit(row: list[str], width: int) -> list[str]:
    """Pad with empty strings or truncate so the row has ``width`` cells."""
    return (row + [""] * width)[:width]


def _score_index(columns: list[str]) -> Optional[int]:
    for idx, column in enumerate(columns):
        if column.strip().lower() == "score":
            return idx
    return None


def build_drilldown_table(text: str, strict: bool = False) -> DrilldownTable:
    """Build a drill-down table from CSV text.

    Args:
        text: Raw CSV upload.
        strict: Forwarded to the CSV parser (reject unterminated quotes).

    Returns:
        DrilldownTable with every row aligned to the header width.

    Raises:
        EmptyInputError: Parsed grid has no rows.
        MissingHeaderError: Only a title row was present.
        NoDataRowsError: No rows after the header, or all rows lacked a score.
    """
    grid = parse_csv(text, strict=strict)
    if not grid:
        raise EmptyInputError("CSV file is empty")

    title = None
    if _is_title_row(grid[0]):
        title = grid[0][0] or None
        grid = grid[1:]

    if not grid:
        raise MissingHeaderError("CSV file has no header row")

    columns = [
        header or f"Column {idx + 1}"
        for idx, header in enumerate(grid[0])
    ]
    data_rows = [_fit(row, len(columns)) for row in grid[1:]]
    if not data_rows:
        raise NoDataRowsError("CSV file has a header but no data rows")

    score_idx = _score_index(columns)
    if score_idx is not None:
        before = len(data_rows)
        data_rows = [row for row in data_rows if row[score_idx].strip()]
        logger.debug("Score filter kept %d of %d rows", len(data_rows), before)
        if not data_rows:
            raise NoDataRowsError("No rows have a Score value yet")

    logger.info(
        "Drill-down table built -- title=%r | %d columns | %d rows",
        title, len(columns), len(data_rows),
    )
    return DrilldownTable(title=title, columns=columns, rows=data_rows)


# ---------------------------------------------------------------------------
# Display normalizer
# ---------------------------------------------------------------------------

def _sanitize(columns: list[str], rows: list[list[str]]) -> list[list[str]]:
    return [
        [(row[idx] if idx < len(row) and row[idx] is not None else "").strip()
         for idx in range(len(columns))]
        for row in rows
    ]


def normalize(table: DrilldownTable) -> DisplayGrid:
    """Blank repeated values column by column, keeping the raw values.

    A cell displays blank when it is empty or equal to the same column's raw
    value in the row immediately above.
    """
    raw = _sanitize(table.columns, table.rows)
    display = []
    for row_idx, row in enumerate(raw):
        prev = raw[row_idx - 1] if row_idx > 0 else None
        display.append([
            "" if not cell or (prev is not None and prev[col_idx] == cell) else cell
            for col_idx, cell in enumerate(row)
        ])
    return DisplayGrid(raw=raw, display=display)


# ---------------------------------------------------------------------------
# Column classifier
# ---------------------------------------------------------------------------

# (predicate on lowercase header, header shown?, width, css class, growth badge)
# Evaluated top to bottom; the first match wins.
COLUMN_RULES: list[tuple[Callable[[str], bool], bool, str, str, bool]] = [
    (lambda key: "growth category" in key, False, "30px", "growth-column", True),
    (lambda key: key == "kpis", True, "50px", "indent-column indent-kpis", False),
    (lambda key: key == "category", True, "110px", "indent-column indent-category", False),
    (lambda key: key == "score", True, "40px", "detail-column", False),
    (lambda key: key == "kpi", True, "310px", "detail-column", False),
    (lambda key: key == "description", True, "242px", "detail-column", False),
    (lambda key: "profit driver" in key, True, "157px", "detail-column", False),
]

DEFAULT_RULE = (True, "150px", "detail-column", False)


def classify_column(header: str) -> ColumnMeta:
    """Map a column header onto its presentation role."""
    key = header.lower().strip()
    show_header, width, css_class, is_growth = DEFAULT_RULE
    for predicate, *role in COLUMN_RULES:
        if predicate(key):
            show_header, width, css_class, is_growth = role
            break
    return ColumnMeta(
        label=header,
        header_label=header if show_header else "",
        width=width,
        css_class=css_class,
        is_growth=is_growth,
    )


def cell_classes(meta: ColumnMeta, display: str) -> str:
    """CSS class list for a body cell; ``empty`` marks blank display values."""
    return " ".join(c for c in (meta.css_class, "" if display else "empty") if c)


def cell_content(meta: ColumnMeta, display: str) -> tuple[str, bool]:
    """Return ``(text, as_badge)`` for a body cell.

    Blank cells render a non-breaking space so print layout keeps row height.
    """
    if not display.strip():
        return NBSP, False
    return display, meta.is_growth
