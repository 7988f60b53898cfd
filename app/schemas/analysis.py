"""
app/schemas/analysis.py

Response schemas for BA cluster analysis endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from app.domain.analysis_state import AnalysisSnapshot
from llm_synthesis.schema import AnalysisResult


class AggregatedBAResponse(BaseModel):
    """
    API response model for one aggregated business area.
    """

    model_config = ConfigDict(populate_by_name=True)

    ba: str
    total_amount: float = Field(..., alias="totalAmount")
    transaction_count: int = Field(..., ge=1, alias="transactionCount")
    avg_amount: float = Field(..., alias="avgAmount")
    std_dev_amount: float = Field(..., ge=0, alias="stdDevAmount")


class AnalysisSnapshotResponse(BaseModel):
    """
    API response model for the controller state.
    """

    model_config = ConfigDict(populate_by_name=True)

    state: str
    aggregated: list[AggregatedBAResponse] = Field(default_factory=list)
    analysis: AnalysisResult | None = None
    error: str | None = None

    @classmethod
    def from_snapshot(cls, snapshot: AnalysisSnapshot) -> "AnalysisSnapshotResponse":
        return cls.model_validate(snapshot.to_payload())
