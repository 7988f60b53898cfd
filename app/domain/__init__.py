"""
app/domain package marker.
"""

from app.domain.analysis_state import AnalysisSnapshot, AppState
from app.domain.business_area import AggregatedBA

__all__ = [
    "AggregatedBA",
    "AnalysisSnapshot",
    "AppState",
]
