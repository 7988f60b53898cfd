"""
app/domain/analysis_state.py

State machine states and the read-only snapshot exposed to consumers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from app.domain.business_area import AggregatedBA
from llm_synthesis.schema import AnalysisResult


class AppState(str, Enum):
    """Lifecycle of one upload-to-display cycle."""

    IDLE = "idle"
    PROCESSING_DATA = "processing_data"
    ANALYZING_AI = "analyzing_ai"
    SUCCESS = "success"
    ERROR = "error"


IN_FLIGHT_STATES = frozenset({AppState.PROCESSING_DATA, AppState.ANALYZING_AI})


@dataclass(frozen=True)
class AnalysisSnapshot:
    """
    Immutable view of the controller at one point in time.
    """

    state: AppState
    aggregated: tuple[AggregatedBA, ...] = field(default_factory=tuple)
    analysis: AnalysisResult | None = None
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "aggregated": [row.to_payload() for row in self.aggregated],
            "analysis": (
                self.analysis.model_dump(by_alias=True)
                if self.analysis is not None
                else None
            ),
            "error": self.error,
        }
