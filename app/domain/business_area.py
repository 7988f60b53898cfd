"""
app/domain/business_area.py

Domain models produced by the CSV aggregation step.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class AggregatedBA:
    """
    Aggregate transaction statistics for one business area.
    """

    ba: str
    total_amount: float
    transaction_count: int
    avg_amount: float
    std_dev_amount: float

    def to_payload(self) -> dict[str, Any]:
        """
        Return the camelCase wire shape shared with the LLM prompt and the API.
        """

        return {
            "ba": self.ba,
            "totalAmount": self.total_amount,
            "transactionCount": self.transaction_count,
            "avgAmount": self.avg_amount,
            "stdDevAmount": self.std_dev_amount,
        }
