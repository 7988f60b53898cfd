"""
tests/test_csv_aggregator.py

Pytest unit tests for CsvAggregator.

All tests are pure Python: no files, no network, literal CSV text only.

Coverage
--------
- Grouping, totals, population standard deviation
- First-seen emission order
- Malformed-row skipping and column detection
- Count-only mode without an amount column
- Best-effort amount parsing
- Empty / header-only input
- Strict mode
"""

from __future__ import annotations

import math

import pytest

from app.domain.business_area import AggregatedBA
from app.errors import ParseError
from app.services.csv_aggregator import CsvAggregator


@pytest.fixture()
def aggregator() -> CsvAggregator:
    return CsvAggregator()


def _by_ba(rows: list[AggregatedBA]) -> dict[str, AggregatedBA]:
    return {row.ba: row for row in rows}


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


class TestAggregation:
    def test_groups_and_computes_statistics(self, aggregator: CsvAggregator) -> None:
        result = aggregator.aggregate("BA,Amount\nA,100\nA,200\nB,50")

        assert result == [
            AggregatedBA(ba="A", total_amount=300.0, transaction_count=2, avg_amount=150.0, std_dev_amount=50.0),
            AggregatedBA(ba="B", total_amount=50.0, transaction_count=1, avg_amount=50.0, std_dev_amount=0.0),
        ]

    def test_population_standard_deviation(self, aggregator: CsvAggregator) -> None:
        result = aggregator.aggregate("BA,Amount\nX,1\nX,2\nX,3\nX,4")

        assert result[0].std_dev_amount == pytest.approx(math.sqrt(1.25))

    def test_single_row_has_zero_std_dev(self, aggregator: CsvAggregator) -> None:
        result = aggregator.aggregate("BA,Amount\nSolo,123.45")

        assert result[0].transaction_count == 1
        assert result[0].std_dev_amount == 0.0

    def test_average_is_total_over_count(self, aggregator: CsvAggregator) -> None:
        text = "BA,Amount\nA,10.5\nA,3.25\nB,7\nA,1\nB,0.1"
        for row in aggregator.aggregate(text):
            assert row.avg_amount == row.total_amount / row.transaction_count

    def test_total_is_exact_sum(self, aggregator: CsvAggregator) -> None:
        rows = _by_ba(aggregator.aggregate("BA,Amount\nA,1.5\nB,2\nA,2.5\nA,-1"))

        assert rows["A"].total_amount == 3.0
        assert rows["A"].transaction_count == 3
        assert rows["B"].total_amount == 2.0

    def test_emission_follows_first_seen_order(self, aggregator: CsvAggregator) -> None:
        result = aggregator.aggregate("BA,Amount\nZ,1\nA,2\nZ,3\nM,4\nA,5")

        assert [row.ba for row in result] == ["Z", "A", "M"]

    def test_keys_are_case_sensitive(self, aggregator: CsvAggregator) -> None:
        result = aggregator.aggregate("BA,Amount\na,1\nA,2")

        assert [row.ba for row in result] == ["a", "A"]

    def test_crlf_and_blank_lines(self, aggregator: CsvAggregator) -> None:
        result = aggregator.aggregate("BA,Amount\r\n\r\nA,1\r\n   \r\nA,2\r\n")

        assert result == [
            AggregatedBA(ba="A", total_amount=3.0, transaction_count=2, avg_amount=1.5, std_dev_amount=0.5)
        ]

    def test_quotes_are_stripped_from_headers_and_cells(self, aggregator: CsvAggregator) -> None:
        result = aggregator.aggregate('"BA" , "Amount"\n"North", "42"')

        assert result[0].ba == "North"
        assert result[0].total_amount == 42.0


# ---------------------------------------------------------------------------
# Column detection
# ---------------------------------------------------------------------------


class TestColumnDetection:
    def test_business_area_header_with_value_column(self, aggregator: CsvAggregator) -> None:
        result = aggregator.aggregate("Business Area,Value\nNorth,10\nNorth,30")

        assert result[0].total_amount == 40.0

    def test_headers_match_by_substring(self, aggregator: CsvAggregator) -> None:
        result = aggregator.aggregate("Date,BA Code,Net Value\n2025-01-01,1001,5\n2025-01-02,1001,7")

        assert result == [
            AggregatedBA(ba="1001", total_amount=12.0, transaction_count=2, avg_amount=6.0, std_dev_amount=1.0)
        ]

    def test_first_matching_header_wins(self, aggregator: CsvAggregator) -> None:
        # "Balance" contains "ba" and precedes the real BA column.
        result = aggregator.aggregate("Balance,BA,DMBTR\nB1,X,5")

        assert result[0].ba == "B1"
        assert result[0].total_amount == 5.0

    def test_missing_ba_column_raises(self, aggregator: CsvAggregator) -> None:
        with pytest.raises(ParseError, match="Business Area"):
            aggregator.aggregate("Region,Amount\nNorth,1")

    def test_count_only_mode_without_amount_column(self, aggregator: CsvAggregator) -> None:
        result = aggregator.aggregate("BA\nX\nX\nX")

        assert result == [
            AggregatedBA(ba="X", total_amount=3.0, transaction_count=3, avg_amount=1.0, std_dev_amount=0.0)
        ]

    def test_count_only_total_equals_count(self, aggregator: CsvAggregator) -> None:
        for row in aggregator.aggregate("BA,Region\nA,n\nB,s\nA,e\nC,w\nA,n"):
            assert row.total_amount == row.transaction_count


# ---------------------------------------------------------------------------
# Malformed rows and amounts
# ---------------------------------------------------------------------------


class TestMalformedInput:
    def test_only_malformed_row_yields_empty_result(self, aggregator: CsvAggregator) -> None:
        assert aggregator.aggregate("Business Area,Value\nNorth,1,2") == []

    def test_malformed_rows_do_not_change_aggregates(self, aggregator: CsvAggregator) -> None:
        clean = aggregator.aggregate("BA,Amount\nA,1\nB,2\nA,3")
        noisy = aggregator.aggregate("BA,Amount\nA,1\nQ,9,9\nB,2\nQ\nA,3\nA,1,2,3")

        assert noisy == clean

    def test_quoted_comma_row_is_dropped(self, aggregator: CsvAggregator) -> None:
        result = aggregator.aggregate('BA,Amount\nA,"1,000"\nA,5')

        assert result[0].transaction_count == 1
        assert result[0].total_amount == 5.0

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("abc", 0.0),
            ("", 0.0),
            ("12abc", 12.0),
            ("-5.5", -5.5),
            ("1e3", 1000.0),
            (".5", 0.5),
        ],
    )
    def test_best_effort_amount_parsing(self, aggregator: CsvAggregator, raw: str, expected: float) -> None:
        result = aggregator.aggregate(f"BA,Amount\nA,{raw}")

        assert result[0].total_amount == expected
        assert result[0].transaction_count == 1

    def test_overflowing_amount_counts_as_zero(self, aggregator: CsvAggregator) -> None:
        result = _by_ba(aggregator.aggregate("BA,Amount\nA,1e999\nA,5\nB,-1e999"))

        assert result["A"].total_amount == 5.0
        assert result["A"].transaction_count == 2
        assert result["A"].std_dev_amount == 2.5
        assert result["B"].total_amount == 0.0
        assert all(
            math.isfinite(value)
            for row in result.values()
            for value in (row.total_amount, row.avg_amount, row.std_dev_amount)
        )

    def test_total_beyond_float_range_raises(self, aggregator: CsvAggregator) -> None:
        with pytest.raises(ParseError, match="out of range"):
            aggregator.aggregate("BA,Amount\nA,1e308\nA,1e308")


# ---------------------------------------------------------------------------
# Empty input
# ---------------------------------------------------------------------------


class TestEmptyInput:
    def test_empty_text_raises(self, aggregator: CsvAggregator) -> None:
        with pytest.raises(ParseError, match="File is empty"):
            aggregator.aggregate("")

    def test_header_only_raises(self, aggregator: CsvAggregator) -> None:
        with pytest.raises(ParseError, match="Invalid CSV format"):
            aggregator.aggregate("BA,Amount\n")

    def test_whitespace_only_raises(self, aggregator: CsvAggregator) -> None:
        with pytest.raises(ParseError, match="Invalid CSV format"):
            aggregator.aggregate("\n   \r\n\n")


# ---------------------------------------------------------------------------
# Strict mode
# ---------------------------------------------------------------------------


class TestStrictMode:
    def test_malformed_row_raises_with_line_number(self) -> None:
        with pytest.raises(ParseError, match="Line 3"):
            CsvAggregator(strict=True).aggregate("BA,Amount\nA,1\nA,1,2")

    def test_unparsable_amount_raises(self) -> None:
        with pytest.raises(ParseError, match="not a number"):
            CsvAggregator(strict=True).aggregate("BA,Amount\nA,12abc")

    def test_clean_input_matches_lenient_mode(self) -> None:
        text = "BA,Amount\nA,100\nA,200\nB,50"

        assert CsvAggregator(strict=True).aggregate(text) == CsvAggregator().aggregate(text)

    def test_overflowing_amount_raises(self) -> None:
        with pytest.raises(ParseError, match="Line 2"):
            CsvAggregator(strict=True).aggregate("BA,Amount\nA,1e999")
