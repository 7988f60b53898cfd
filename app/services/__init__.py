"""
app/services package marker.
"""

from app.services.analysis_controller import (
    AnalysisController,
    AnalysisInProgressError,
    InvalidStateTransitionError,
    build_analysis_controller,
)
from app.services.csv_aggregator import CsvAggregator

__all__ = [
    "AnalysisController",
    "AnalysisInProgressError",
    "CsvAggregator",
    "InvalidStateTransitionError",
    "build_analysis_controller",
]
