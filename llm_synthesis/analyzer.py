"""Single-shot cluster analysis: build request, call the LLM, validate.

No retries: any failure surfaces immediately as AnalysisError.
"""

import logging
from typing import Sequence

from app.domain.business_area import AggregatedBA
from app.errors import AnalysisError
from app.logging_utils import log_event
from llm_synthesis.adapter import BaseLLMAdapter
from llm_synthesis.prompt_builder import AnalysisRequestBuilder
from llm_synthesis.schema import AnalysisResult
from llm_synthesis.validator import check_member_coverage, parse_response

logger = logging.getLogger(__name__)


class ClusterAnalyzer:
    """Runs one analysis request against the configured adapter.

    Args:
        adapter: LLM adapter used to reach the analysis service.
        builder: Request builder; defaults to Thai narrative, 3 clusters.
        enforce_member_coverage: When True, clusters that do not cover
            every input ba exactly once fail the run.
    """

    def __init__(
        self,
        adapter: BaseLLMAdapter,
        builder: AnalysisRequestBuilder | None = None,
        *,
        enforce_member_coverage: bool = False,
    ) -> None:
        self._adapter = adapter
        self._builder = builder or AnalysisRequestBuilder()
        self._enforce_member_coverage = enforce_member_coverage

    async def analyze(self, rows: Sequence[AggregatedBA]) -> AnalysisResult:
        """Analyze aggregated rows and return the validated result.

        Raises:
            AnalysisError: On transport failure, empty or malformed
                response, or (when enforced) incomplete coverage.
        """
        request = self._builder.build_request(rows)
        log_event(
            logger,
            logging.INFO,
            "analysis_request_built",
            business_areas=len(request.records),
            prompt_chars=len(request.prompt),
        )

        try:
            raw = await self._adapter.generate(request)
        except AnalysisError:
            raise
        except Exception as exc:
            logger.error("Analysis service request failed: %s", exc)
            raise AnalysisError(
                f"Analysis request failed: {exc}",
                stage="request",
                errors=[str(exc)],
            ) from exc

        result = parse_response(raw)

        coverage = check_member_coverage(result, rows)
        if not coverage.is_complete:
            problems = coverage.describe()
            logger.warning("Cluster membership is inconsistent with input: %s", "; ".join(problems))
            if self._enforce_member_coverage:
                raise AnalysisError(
                    "Cluster membership does not cover the input: " + "; ".join(problems),
                    stage="coverage",
                    errors=problems,
                    raw_response=raw,
                )

        log_event(
            logger,
            logging.INFO,
            "analysis_completed",
            clusters=len(result.clusters),
            coverage_complete=coverage.is_complete,
        )
        return result
