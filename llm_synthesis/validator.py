"""Validation layer for raw analysis responses.

Parses JSON strings into AnalysisResult and checks cluster membership
against the aggregated input.
"""

import json
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from pydantic import ValidationError

from app.domain.business_area import AggregatedBA
from app.errors import AnalysisError
from llm_synthesis.schema import AnalysisResult


def _strip_markdown_fences(text: str) -> str:
    """Remove optional markdown code fences wrapping JSON.

    LLMs sometimes wrap output in ```json ... ``` despite instructions.

    Args:
        text: Raw LLM response string.

    Returns:
        The text with leading/trailing code fences removed, if present.
    """
    stripped = text.strip()
    match = re.match(
        r"^```(?:json)?\s*\n?(.*?)\n?\s*```$",
        stripped,
        re.DOTALL,
    )
    if match:
        return match.group(1).strip()
    return stripped


def parse_response(raw_response: Optional[str]) -> AnalysisResult:
    """Parse and validate a raw analysis response.

    Steps:
        1. Reject missing or blank payloads.
        2. Strip optional markdown fences and parse as JSON.
        3. Validate against the AnalysisResult model. Unknown keys are
           tolerated and dropped.

    Args:
        raw_response: The raw string returned by the LLM adapter.

    Returns:
        A validated AnalysisResult instance.

    Raises:
        AnalysisError: If the payload is empty, not JSON, or misses
            required fields.
    """
    if raw_response is None or not raw_response.strip():
        raise AnalysisError(
            "No response from the analysis service",
            stage="empty",
            raw_response=raw_response,
        )

    cleaned = _strip_markdown_fences(raw_response)

    try:
        data = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError) as exc:
        raise AnalysisError(
            f"Analysis response is not valid JSON: {exc}",
            stage="json_parse",
            errors=[str(exc)],
            raw_response=raw_response,
        ) from exc

    if not isinstance(data, dict):
        raise AnalysisError(
            "Analysis response failed schema validation: top-level JSON must be an object",
            stage="schema",
            errors=["top-level JSON must be an object"],
            raw_response=raw_response,
        )

    try:
        return AnalysisResult.model_validate(data)
    except ValidationError as exc:
        errors = [
            f"{'.'.join(str(loc) for loc in e['loc']) or '<root>'}: {e['msg']}"
            for e in exc.errors()
        ]
        raise AnalysisError(
            "Analysis response failed schema validation: " + "; ".join(errors),
            stage="schema",
            errors=errors,
            raw_response=raw_response,
        ) from exc


@dataclass(frozen=True)
class CoverageReport:
    """Membership consistency between clusters and aggregated input."""

    missing: Tuple[str, ...] = field(default_factory=tuple)
    duplicated: Tuple[str, ...] = field(default_factory=tuple)
    unknown: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_complete(self) -> bool:
        return not (self.missing or self.duplicated or self.unknown)

    def describe(self) -> List[str]:
        problems: List[str] = []
        if self.missing:
            problems.append("unassigned BAs: " + ", ".join(self.missing))
        if self.duplicated:
            problems.append("BAs in more than one cluster: " + ", ".join(self.duplicated))
        if self.unknown:
            problems.append("members not in input: " + ", ".join(self.unknown))
        return problems


def check_member_coverage(
    result: AnalysisResult,
    rows: Sequence[AggregatedBA],
) -> CoverageReport:
    """Compare cluster members with the aggregated ba set.

    Every input ba should appear in exactly one cluster. The report is
    returned as-is; callers decide whether gaps are fatal.
    """
    expected = [row.ba for row in rows]
    expected_set = set(expected)
    # A ba listed twice in the same cluster still counts once.
    counts = Counter(
        member for cluster in result.clusters for member in set(cluster.member_bas)
    )

    return CoverageReport(
        missing=tuple(ba for ba in expected if ba not in counts),
        duplicated=tuple(ba for ba in expected if counts.get(ba, 0) > 1),
        unknown=tuple(sorted(member for member in counts if member not in expected_set)),
    )
