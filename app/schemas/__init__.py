"""
app/schemas package marker.
"""

from app.schemas.analysis import AggregatedBAResponse, AnalysisSnapshotResponse

__all__ = [
    "AggregatedBAResponse",
    "AnalysisSnapshotResponse",
]
