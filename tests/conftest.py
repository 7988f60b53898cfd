"""Shared fixtures for the BA cluster insight tests."""

from __future__ import annotations

import copy
import json

import pytest

from app.domain.business_area import AggregatedBA


_VALID_RESPONSE = {
    "clusters": [
        {
            "id": "c1",
            "name": "Major Dealers",
            "description": "High value, high volume business areas.",
            "customerPersona": "Large distributors buying in bulk.",
            "characteristics": ["High total", "Frequent orders"],
            "memberBAs": ["A"],
        },
        {
            "id": "c2",
            "name": "Small Retailers",
            "description": "Low value, occasional buyers.",
            "customerPersona": "Independent shops ordering ad hoc.",
            "characteristics": ["Low total", "Single orders"],
            "memberBAs": ["B"],
        },
    ],
    "executiveSummary": {
        "overview": "Revenue is concentrated in one business area.",
        "strategicRecommendations": ["Protect the dealer relationship."],
        "policyImplications": ["Reduce concentration risk over time."],
    },
}


@pytest.fixture()
def response_payload() -> dict:
    """Fresh, mutable well-formed analysis payload."""
    return copy.deepcopy(_VALID_RESPONSE)


@pytest.fixture()
def response_json(response_payload: dict) -> str:
    return json.dumps(response_payload)


@pytest.fixture()
def aggregated_rows() -> list[AggregatedBA]:
    """Aggregation of BA,Amount / A,100 / A,200 / B,50."""
    return [
        AggregatedBA(ba="A", total_amount=300.0, transaction_count=2, avg_amount=150.0, std_dev_amount=50.0),
        AggregatedBA(ba="B", total_amount=50.0, transaction_count=1, avg_amount=50.0, std_dev_amount=0.0),
    ]
