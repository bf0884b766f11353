"""
csv_parser.py — Lenient CSV Tokenizer.

Converts raw CSV text into a grid of trimmed string cells. Quoted fields may
contain commas, newlines and doubled quotes (``""`` → ``"``). Carriage returns
are dropped everywhere outside quotes so CRLF and LF files parse identically.

The scanner never fails mid-input: an unterminated quote simply runs to the
end of the text and whatever was accumulated is flushed. Callers that prefer
to reject such input pass ``strict=True``.
"""

import logging

logger = logging.getLogger(__name__)

BOM = "\ufeff"


class UnterminatedQuoteError(ValueError):
    """Raised in strict mode when the input ends inside a quoted field."""


def _is_blank(row: list[str]) -> bool:
    return all(cell == "" for cell in row)


def parse_csv(text: str, strict: bool = False) -> list[list[str]]:
    """Parse CSV text into rows of trimmed cells.

    Args:
        text: Raw CSV text, optionally starting with a byte-order mark.
        strict: Raise instead of flushing when a quote is left open.

    Returns:
        List of rows; rows whose cells are all empty are dropped.

    Raises:
        UnterminatedQuoteError: Only when ``strict`` is set.
    """
    if text.startswith(BOM):
        text = text[1:]

    rows: list[list[str]] = []
    row: list[str] = []
    cell: list[str] = []
    in_quotes = False

    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if in_quotes:
            if ch == '"':
                if i + 1 < n and text[i + 1] == '"':
                    cell.append('"')
                    i += 1
                else:
                    in_quotes = False
            else:
                cell.append(ch)
        elif ch == '"':
            in_quotes = True
        elif ch == ",":
            row.append("".join(cell).strip())
            cell = []
        elif ch == "\n":
            row.append("".join(cell).strip())
            rows.append(row)
            row, cell = [], []
        elif ch == "\r":
            pass
        else:
            cell.append(ch)
        i += 1

    # Flush whatever is pending, including an unterminated quoted span.
    row.append("".join(cell).strip())
    rows.append(row)

    if in_quotes:
        if strict:
            raise UnterminatedQuoteError("CSV input ends inside a quoted field")
        logger.warning("CSV input ends inside a quoted field -- flushing partial cell")

    grid = [[c.strip() for c in r] for r in rows]
    grid = [r for r in grid if not _is_blank(r)]
    logger.debug("Parsed CSV: %d non-blank rows", len(grid))
    return grid
