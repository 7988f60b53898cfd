"""
app/services/dashboard_service.py

Pure computations behind the results dashboard: portfolio KPI cards,
per-BA cluster assignment, cluster membership shares and the top
business areas by average ticket.

Every function accepts an empty aggregation so the no-data path of a
consumer can render without special casing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from app.domain.business_area import AggregatedBA
from llm_synthesis.schema import AnalysisResult

UNKNOWN_CLUSTER_ID = "unknown"
UNKNOWN_CLUSTER_NAME = "Unknown"
DEFAULT_TOP_LIMIT = 10


@dataclass(frozen=True)
class PortfolioKPIs:
    """
    Headline figures across all business areas.
    """

    total_amount: float
    total_transactions: int
    avg_ticket: float
    business_area_count: int
    top_ba: AggregatedBA | None

    def to_payload(self) -> dict[str, Any]:
        return {
            "totalAmount": self.total_amount,
            "totalTransactions": self.total_transactions,
            "avgTicket": self.avg_ticket,
            "businessAreaCount": self.business_area_count,
            "topBA": self.top_ba.to_payload() if self.top_ba is not None else None,
        }


@dataclass(frozen=True)
class ClusteredBA:
    """
    One aggregated business area joined with its cluster.
    """

    row: AggregatedBA
    cluster_id: str
    cluster_name: str

    def to_payload(self) -> dict[str, Any]:
        return {
            **self.row.to_payload(),
            "clusterId": self.cluster_id,
            "clusterName": self.cluster_name,
        }


@dataclass(frozen=True)
class ClusterShare:
    """
    Membership size of one cluster relative to the aggregated set.
    """

    cluster_id: str
    cluster_name: str
    member_count: int
    share: float

    def to_payload(self) -> dict[str, Any]:
        return {
            "clusterId": self.cluster_id,
            "clusterName": self.cluster_name,
            "memberCount": self.member_count,
            "share": self.share,
        }


def build_portfolio_kpis(rows: Sequence[AggregatedBA]) -> PortfolioKPIs:
    """
    Sum totals and pick the top business area by total amount.

    On ties the later row wins.
    """

    total_amount = sum(row.total_amount for row in rows)
    total_transactions = sum(row.transaction_count for row in rows)
    avg_ticket = total_amount / total_transactions if total_transactions else 0.0

    top_ba: AggregatedBA | None = None
    for row in rows:
        if top_ba is None or not top_ba.total_amount > row.total_amount:
            top_ba = row

    return PortfolioKPIs(
        total_amount=total_amount,
        total_transactions=total_transactions,
        avg_ticket=avg_ticket,
        business_area_count=len(rows),
        top_ba=top_ba,
    )


def assign_clusters(
    rows: Sequence[AggregatedBA],
    analysis: AnalysisResult,
) -> list[ClusteredBA]:
    """
    Attach the first cluster listing each ba, or the Unknown cluster.
    """

    lookup: dict[str, tuple[str, str]] = {}
    for cluster in analysis.clusters:
        for member in cluster.member_bas:
            lookup.setdefault(member, (cluster.id, cluster.name))

    clustered: list[ClusteredBA] = []
    for row in rows:
        cluster_id, cluster_name = lookup.get(row.ba, (UNKNOWN_CLUSTER_ID, UNKNOWN_CLUSTER_NAME))
        clustered.append(ClusteredBA(row=row, cluster_id=cluster_id, cluster_name=cluster_name))
    return clustered


def cluster_shares(
    rows: Sequence[AggregatedBA],
    analysis: AnalysisResult,
) -> list[ClusterShare]:
    """
    Member count of each cluster as a fraction of all aggregated business areas.
    """

    total = len(rows)
    return [
        ClusterShare(
            cluster_id=cluster.id,
            cluster_name=cluster.name,
            member_count=len(cluster.member_bas),
            share=len(cluster.member_bas) / total if total else 0.0,
        )
        for cluster in analysis.clusters
    ]


def top_by_average(
    rows: Sequence[AggregatedBA],
    limit: int = DEFAULT_TOP_LIMIT,
) -> list[AggregatedBA]:
    """
    Highest average ticket first; equal averages keep input order.
    """

    return sorted(rows, key=lambda row: row.avg_amount, reverse=True)[: max(0, limit)]


def build_dashboard(
    rows: Sequence[AggregatedBA],
    analysis: AnalysisResult,
    limit: int = DEFAULT_TOP_LIMIT,
) -> dict[str, Any]:
    """
    Assemble every dashboard dataset in wire shape.
    """

    return {
        "kpis": build_portfolio_kpis(rows).to_payload(),
        "businessAreas": [item.to_payload() for item in assign_clusters(rows, analysis)],
        "clusterShares": [share.to_payload() for share in cluster_shares(rows, analysis)],
        "topByAverage": [row.to_payload() for row in top_by_average(rows, limit)],
    }
