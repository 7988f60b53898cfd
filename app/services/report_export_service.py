"""
app/services/report_export_service.py

Tabular and JSON export of one completed analysis cycle.

The CSV export has one row per business area with the aggregate columns
followed by the assigned cluster, in aggregation order. The JSON export
carries the aggregated rows, the analysis result and the KPI cards in
the camelCase wire shape.
"""

from __future__ import annotations

import io
import json
from typing import Any, Sequence

import pandas as pd

from app.domain.business_area import AggregatedBA
from app.services.dashboard_service import assign_clusters, build_portfolio_kpis
from llm_synthesis.schema import AnalysisResult

CSV_COLUMNS: tuple[str, ...] = (
    "ba",
    "total_amount",
    "transaction_count",
    "avg_amount",
    "std_dev_amount",
    "cluster_id",
    "cluster_name",
)


class ReportExportService:
    """
    Serialise aggregated data and its analysis for download.
    """

    def __init__(self, aggregated: Sequence[AggregatedBA], analysis: AnalysisResult) -> None:
        self._aggregated = list(aggregated)
        self._analysis = analysis

    def to_frame(self) -> pd.DataFrame:
        records = [
            {
                "ba": item.row.ba,
                "total_amount": item.row.total_amount,
                "transaction_count": item.row.transaction_count,
                "avg_amount": item.row.avg_amount,
                "std_dev_amount": item.row.std_dev_amount,
                "cluster_id": item.cluster_id,
                "cluster_name": item.cluster_name,
            }
            for item in assign_clusters(self._aggregated, self._analysis)
        ]
        return pd.DataFrame(records, columns=list(CSV_COLUMNS))

    def to_csv(self) -> str:
        buffer = io.StringIO()
        self.to_frame().to_csv(buffer, index=False)
        return buffer.getvalue()

    def to_payload(self) -> dict[str, Any]:
        return {
            "aggregated": [row.to_payload() for row in self._aggregated],
            "analysis": self._analysis.model_dump(by_alias=True),
            "kpis": build_portfolio_kpis(self._aggregated).to_payload(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_payload(), indent=2, ensure_ascii=False)
