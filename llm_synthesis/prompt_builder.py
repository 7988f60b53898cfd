"""Structured request builder for the BA cluster analysis."""

import json
from dataclasses import dataclass, field
from typing import Dict, Sequence, Tuple

from app.domain.business_area import AggregatedBA
from llm_synthesis.schema import build_response_schema

DEFAULT_LANGUAGE = "Thai (ภาษาไทย)"
SCHEMA_NAME = "ba_cluster_analysis"

_SYSTEM_INSTRUCTIONS = """\
You are a Senior Data Analyst and Business Strategist for a large enterprise.

I have aggregated transaction data for different Business Areas (BA).
Data fields:
- ba: Business Area Name
- totalAmount: Total transaction value
- transactionCount: Number of transactions
- avgAmount: Average value per transaction
- stdDevAmount: Variance in transaction value
"""

_TASK_TEMPLATE = """\
Task:
1. Perform a logical clustering analysis on this data to group BAs into {cluster_count} distinct segments based on their value and volume patterns.
2. Assign each BA to exactly one cluster. Every ba in the input data must appear in exactly one cluster's memberBAs.
3. Provide a detailed analysis in {language}.
4. **Crucial**: For "customerPersona", explicitly identify WHO these BAs likely represent based on the data pattern (e.g., "Major Dealers", "Small Retailers", "Ad-hoc Contractors") and describe their nature in detail.
5. Provide high-level executive insights suitable for policy making: an overview, strategic recommendations and policy implications.
"""


@dataclass(frozen=True)
class AnalysisRequest:
    """Everything an adapter needs to call the analysis service."""

    prompt: str
    response_schema: Dict
    schema_name: str
    temperature: float
    records: Tuple[AggregatedBA, ...] = field(default_factory=tuple)


class AnalysisRequestBuilder:
    """Builds a schema-constrained analysis request from aggregated BAs.

    The builder is pure: no I/O, and the same rows always produce the
    same request. It does not limit payload size; callers with very
    large datasets are responsible for trimming the input.
    """

    def __init__(
        self,
        language: str = DEFAULT_LANGUAGE,
        cluster_count: int = 3,
        temperature: float = 0.3,
    ) -> None:
        self._language = language
        self._cluster_count = max(1, cluster_count)
        self._temperature = temperature
        self._schema = build_response_schema(language)

    def build_request(self, rows: Sequence[AggregatedBA]) -> AnalysisRequest:
        """Build the request for one analysis run.

        Args:
            rows: Aggregated statistics in emission order.

        Returns:
            A frozen AnalysisRequest carrying prompt, schema and settings.
        """
        return AnalysisRequest(
            prompt=self.build_prompt(rows),
            response_schema=self._schema,
            schema_name=SCHEMA_NAME,
            temperature=self._temperature,
            records=tuple(rows),
        )

    def build_prompt(self, rows: Sequence[AggregatedBA]) -> str:
        data_context = json.dumps(
            [row.to_payload() for row in rows],
            ensure_ascii=False,
        )
        schema_json = json.dumps(self._schema, indent=2, ensure_ascii=False)
        task = _TASK_TEMPLATE.format(
            cluster_count=self._cluster_count,
            language=self._language,
        )
        return (
            f"{_SYSTEM_INSTRUCTIONS}\n"
            f"{task}\n"
            f"# OUTPUT SCHEMA\n\n"
            f"Return strictly valid JSON matching this schema, with no text "
            f"outside the JSON object:\n\n"
            f"```json\n{schema_json}\n```\n\n"
            f"Input Data:\n{data_context}\n"
        )
