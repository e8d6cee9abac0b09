"""
ResponseParser Component

Parses pipe-delimited table text returned by the language model and
validates it against the expected grammar:

- one row per non-empty line
- cells separated by "|" (leading/trailing pipes optional, "\\|" is a literal pipe)
- markdown separator rows and code fences are ignored
- the first row is the header; every other row has the same cell count
"""

import logging
import re
from typing import List

logger = logging.getLogger(__name__)

SEPARATOR_ROW_PATTERN = re.compile(r'^\|?\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)*\|?$')
CELL_SPLIT_PATTERN = re.compile(r'(?<!\\)\|')
CODE_FENCE_PREFIX = "```"


def parse_pipe_table(text: str) -> List[List[str]]:
    """
    Parse pipe-delimited text into a 2-D array (header first).

    Args:
        text: Raw model response

    Returns:
        List of rows, each a list of trimmed cell strings

    Raises:
        ValueError: If no rows are found or a row's cell count differs
            from the header's
    """
    rows: List[List[str]] = []
    line_numbers: List[int] = []

    for line_number, raw_line in enumerate((text or "").splitlines(), 1):
        line = raw_line.strip()
        if not line or line.startswith(CODE_FENCE_PREFIX):
            continue
        if SEPARATOR_ROW_PATTERN.match(line):
            continue
        rows.append(split_row(line))
        line_numbers.append(line_number)

    if not rows:
        raise ValueError("No table rows found in response")

    expected = len(rows[0])
    for row, line_number in zip(rows[1:], line_numbers[1:]):
        if len(row) != expected:
            raise ValueError(
                f"Line {line_number} has {len(row)} cells, expected {expected}"
            )

    logger.debug(f"Parsed {len(rows)} rows with {expected} columns")
    return rows


def split_row(line: str) -> List[str]:
    """
    Split a single pipe-delimited line into trimmed cells.

    Args:
        line: Stripped line text

    Returns:
        Cell values with escaped pipes restored
    """
    if line.startswith("|"):
        line = line[1:]
    if line.endswith("|") and not line.endswith("\\|"):
        line = line[:-1]
    return [cell.strip().replace("\\|", "|") for cell in CELL_SPLIT_PATTERN.split(line)]
