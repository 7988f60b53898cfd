"""
app/services/csv_aggregator.py

Single-pass CSV aggregation by business area.

Column detection
----------------
The business-area column is the first header in which ``ba`` or
``business area`` occurs (case-insensitive substring search). The amount
column is the first header containing ``amount``, ``dmbtr``, ``value``
or ``net``. Without an amount column every row counts as 1.

Row policy
----------
Lines are split on bare commas; quoted commas are not supported. Rows
whose cell count differs from the header are skipped, and amounts that
cannot be parsed count as 0. ``strict=True`` turns both into ParseError.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Final

import numpy as np

from app.domain.business_area import AggregatedBA
from app.errors import ParseError
from app.logging_utils import log_event

logger = logging.getLogger(__name__)

BA_COLUMN_PATTERN: Final = re.compile(r"ba|business\s?area", re.IGNORECASE)
AMOUNT_COLUMN_PATTERN: Final = re.compile(r"amount|dmbtr|value|net", re.IGNORECASE)

_LINE_BREAK: Final = re.compile(r"\r?\n")
_SURROUNDING_QUOTE: Final = re.compile(r'^"|"$')
_LEADING_NUMBER: Final = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

COUNT_ONLY_AMOUNT: Final[float] = 1.0


def _split_cells(line: str) -> list[str]:
    return [_SURROUNDING_QUOTE.sub("", cell.strip()) for cell in line.split(",")]


def _find_column(headers: list[str], pattern: re.Pattern[str]) -> int | None:
    for index, header in enumerate(headers):
        if pattern.search(header):
            return index
    return None


class CsvAggregator:
    """
    Parses raw CSV text into per-business-area statistics.

    Parameters
    ----------
    strict:
        Raise ParseError on malformed rows and unparsable amounts
        instead of skipping them or counting them as 0.
    """

    def __init__(self, *, strict: bool = False) -> None:
        self._strict = strict

    def aggregate(self, raw_text: str) -> list[AggregatedBA]:
        """
        Group rows by business area and compute amount statistics.

        Entries are returned in the order each business area was first seen.

        Raises:
            ParseError: If the text is empty, has no data row, or lacks a
                business-area column.
        """

        if not raw_text:
            raise ParseError("File is empty")

        lines = [line for line in _LINE_BREAK.split(raw_text) if line.strip()]
        if len(lines) < 2:
            raise ParseError("Invalid CSV format")

        headers = _split_cells(lines[0])
        ba_index = _find_column(headers, BA_COLUMN_PATTERN)
        amount_index = _find_column(headers, AMOUNT_COLUMN_PATTERN)

        if ba_index is None:
            raise ParseError("Could not find 'BA' or 'Business Area' column.")

        groups: dict[str, list[float]] = {}
        rows_skipped = 0

        for line_number, line in enumerate(lines[1:], start=2):
            cells = _split_cells(line)
            if len(cells) != len(headers):
                if self._strict:
                    raise ParseError(
                        f"Line {line_number}: expected {len(headers)} columns, got {len(cells)}."
                    )
                rows_skipped += 1
                logger.debug(
                    "Skipping malformed CSV line %d: %d cells for %d headers",
                    line_number,
                    len(cells),
                    len(headers),
                )
                continue

            if amount_index is None:
                amount = COUNT_ONLY_AMOUNT
            else:
                amount = self._parse_amount(cells[amount_index], line_number)

            groups.setdefault(cells[ba_index], []).append(amount)

        log_event(
            logger,
            logging.INFO,
            "csv_aggregated",
            ba_column=headers[ba_index],
            amount_column=headers[amount_index] if amount_index is not None else None,
            rows_read=len(lines) - 1,
            rows_skipped=rows_skipped,
            groups=len(groups),
        )

        return [self._summarise(ba, amounts) for ba, amounts in groups.items()]

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _parse_amount(self, raw: str, line_number: int) -> float:
        """
        Parse the leading number of an amount cell with thousands separators removed.

        Unparsable values, including literals that overflow to infinity,
        count as 0 unless running in strict mode.
        """

        cleaned = raw.replace(",", "").strip()
        match = _LEADING_NUMBER.match(cleaned)
        value = float(match.group(0)) if match is not None else math.nan
        if not math.isfinite(value) or (self._strict and match.end() != len(cleaned)):
            if self._strict:
                raise ParseError(f"Line {line_number}: amount '{raw}' is not a number.")
            return 0.0
        return value

    @staticmethod
    def _summarise(ba: str, amounts: list[float]) -> AggregatedBA:
        total = sum(amounts)
        count = len(amounts)
        # Population standard deviation (divides by count, not count - 1).
        with np.errstate(over="ignore", invalid="ignore"):
            std_dev = float(np.std(amounts)) if count > 1 else 0.0
        if not (math.isfinite(total) and math.isfinite(std_dev)):
            raise ParseError(f"Amounts for business area '{ba}' are out of range.")
        return AggregatedBA(
            ba=ba,
            total_amount=total,
            transaction_count=count,
            avg_amount=total / count,
            std_dev_amount=std_dev,
        )
