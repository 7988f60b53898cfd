"""
app/services/analysis_controller.py

State machine sequencing one upload-to-display cycle:

    IDLE --submit_file--> PROCESSING_DATA --aggregated--> ANALYZING_AI --analyzed--> SUCCESS
                                 |                              |
                                 +-------------> ERROR <--------+

SUCCESS and ERROR both return to IDLE through an explicit ``reset()``.
Only one cycle may be in flight; nothing is retried automatically.
"""

from __future__ import annotations

import logging

from app.config import (
    AnalysisSettings,
    CSVAggregationSettings,
    get_analysis_settings,
    get_csv_aggregation_settings,
)
from app.domain.analysis_state import IN_FLIGHT_STATES, AnalysisSnapshot, AppState
from app.domain.business_area import AggregatedBA
from app.errors import AnalysisError, ParseError
from app.logging_utils import log_event
from app.services.csv_aggregator import CsvAggregator
from app.services.file_reader import AsyncReadable, read_upload_text
from llm_synthesis.adapter import build_adapter
from llm_synthesis.analyzer import ClusterAnalyzer
from llm_synthesis.prompt_builder import AnalysisRequestBuilder
from llm_synthesis.schema import AnalysisResult

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class InvalidStateTransitionError(RuntimeError):
    """
    Raised when an operation is not allowed from the current state.
    """


class AnalysisInProgressError(InvalidStateTransitionError):
    """
    Raised when a cycle is already processing or analyzing.
    """


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class AnalysisController:
    """
    Owns the aggregated data, the analysis result and the error message
    for the current cycle, and moves between AppState values.
    """

    def __init__(self, *, aggregator: CsvAggregator, analyzer: ClusterAnalyzer) -> None:
        self._aggregator = aggregator
        self._analyzer = analyzer
        self._state = AppState.IDLE
        self._aggregated: tuple[AggregatedBA, ...] = ()
        self._analysis: AnalysisResult | None = None
        self._error: str | None = None

    @property
    def state(self) -> AppState:
        return self._state

    def snapshot(self) -> AnalysisSnapshot:
        return AnalysisSnapshot(
            state=self._state,
            aggregated=self._aggregated,
            analysis=self._analysis,
            error=self._error,
        )

    async def submit_file(self, source: AsyncReadable) -> AnalysisSnapshot:
        """
        Run one full cycle for an uploaded CSV and return the final snapshot.

        Failures never propagate: they end the cycle in ERROR with the
        message stored on the snapshot.

        Raises:
            AnalysisInProgressError: If a cycle is already in flight.
            InvalidStateTransitionError: If the previous cycle was not reset.
        """

        if self._state in IN_FLIGHT_STATES:
            raise AnalysisInProgressError("An analysis is already in progress.")
        if self._state is not AppState.IDLE:
            raise InvalidStateTransitionError(
                f"Cannot submit a file while in state '{self._state.value}'; reset first."
            )

        self._error = None
        self._transition(AppState.PROCESSING_DATA)

        try:
            raw_text = await read_upload_text(source)
            aggregated = self._aggregator.aggregate(raw_text)
            self._aggregated = tuple(aggregated)
            if not aggregated:
                logger.warning("Aggregation produced no business areas; all rows were skipped")

            self._transition(AppState.ANALYZING_AI, business_areas=len(aggregated))
            self._analysis = await self._analyzer.analyze(aggregated)
        except (ParseError, AnalysisError) as exc:
            logger.warning("Analysis cycle failed: %s", exc)
            self._fail(str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected failure during analysis cycle")
            self._fail(str(exc) or UNEXPECTED_ERROR_MESSAGE)
        else:
            self._transition(AppState.SUCCESS, clusters=len(self._analysis.clusters))

        return self.snapshot()

    def reset(self) -> AnalysisSnapshot:
        """
        Discard all held data and return to IDLE.

        Raises:
            AnalysisInProgressError: If a cycle is in flight.
        """

        if self._state in IN_FLIGHT_STATES:
            raise AnalysisInProgressError("Cannot reset while an analysis is in progress.")
        if self._state is not AppState.IDLE:
            self._aggregated = ()
            self._analysis = None
            self._error = None
            self._transition(AppState.IDLE)
        return self.snapshot()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _fail(self, message: str) -> None:
        self._aggregated = ()
        self._analysis = None
        self._error = message
        self._transition(AppState.ERROR, error=message)

    def _transition(self, target: AppState, **fields: object) -> None:
        previous = self._state
        self._state = target
        log_event(
            logger,
            logging.INFO,
            "analysis_state_changed",
            from_state=previous.value,
            to_state=target.value,
            **fields,
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def build_analysis_controller(
    settings: AnalysisSettings | None = None,
    csv_settings: CSVAggregationSettings | None = None,
) -> AnalysisController:
    """
    Wire aggregator, request builder, adapter and analyzer from settings.

    Raises:
        AnalysisError: If the selected adapter needs an API key and none is set.
    """

    settings = settings or get_analysis_settings()
    csv_settings = csv_settings or get_csv_aggregation_settings()

    builder = AnalysisRequestBuilder(
        language=settings.language,
        cluster_count=settings.cluster_count,
        temperature=settings.temperature,
    )
    analyzer = ClusterAnalyzer(
        build_adapter(settings),
        builder,
        enforce_member_coverage=settings.enforce_member_coverage,
    )
    return AnalysisController(
        aggregator=CsvAggregator(strict=csv_settings.strict_mode),
        analyzer=analyzer,
    )
