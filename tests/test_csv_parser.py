"""
test_csv_parser.py — Unit tests for the lenient CSV tokenizer.

Tests cover:
    - Quoted fields (embedded commas, newlines, doubled quotes)
    - Whitespace trimming and blank-row dropping
    - BOM and CRLF handling
    - Unterminated quotes (lenient flush vs strict mode)
"""

import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from practice_report.csv_parser import UnterminatedQuoteError, parse_csv


class TestQuoting:
    """Quoted-field handling."""

    def test_embedded_comma_is_one_cell(self):
        grid = parse_csv('a,"b, c",d')
        assert grid == [["a", "b, c", "d"]]

    def test_doubled_quote_is_literal(self):
        grid = parse_csv('"say ""hi"" now",x')
        assert grid == [['say "hi" now', "x"]]

    def test_embedded_newline_stays_in_cell(self):
        grid = parse_csv('"line one\nline two",2\n3,4')
        assert grid == [["line one\nline two", "2"], ["3", "4"]]

    def test_quoted_cell_is_trimmed(self):
        assert parse_csv('"  padded  ",x') == [["padded", "x"]]

    def test_empty_quoted_cell(self):
        assert parse_csv('"",b') == [["", "b"]]


class TestRowsAndWhitespace:
    """Row splitting, trimming and blank-line tolerance."""

    def test_cells_trimmed(self):
        assert parse_csv("  a ,  b  \n c,d ") == [["a", "b"], ["c", "d"]]

    def test_blank_rows_dropped(self):
        grid = parse_csv("a,b\n\n , \n\nc,d\n")
        assert grid == [["a", "b"], ["c", "d"]]

    def test_crlf_matches_lf(self):
        assert parse_csv("a,b\r\nc,d\r\n") == parse_csv("a,b\nc,d\n")

    def test_bom_stripped(self):
        grid = parse_csv("\ufeffName,Score\nx,1")
        assert grid[0][0] == "Name"

    def test_trailing_comma_gives_empty_cell(self):
        assert parse_csv("a,b,\n") == [["a", "b", ""]]

    def test_empty_input(self):
        assert parse_csv("") == []

    def test_ragged_rows_preserved(self):
        grid = parse_csv("a,b,c\n1\n2,3")
        assert [len(r) for r in grid] == [3, 1, 2]


class TestUnterminatedQuote:
    """Input that ends inside a quoted field."""

    def test_lenient_flushes_partial_cell(self):
        grid = parse_csv('a,"never closed\nstill inside')
        assert grid == [["a", "never closed\nstill inside"]]

    def test_lenient_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="practice_report.csv_parser"):
            parse_csv('"open')
        assert "quoted field" in caplog.text

    def test_strict_raises(self):
        with pytest.raises(UnterminatedQuoteError):
            parse_csv('a,"open', strict=True)

    def test_strict_accepts_well_formed(self):
        assert parse_csv('"a","b"', strict=True) == [["a", "b"]]

    def test_unterminated_is_value_error(self):
        assert issubclass(UnterminatedQuoteError, ValueError)
