import json

import pytest
from pydantic import ValidationError

from app.errors import AnalysisError
from llm_synthesis.schema import AnalysisResult
from llm_synthesis.validator import check_member_coverage, parse_response


def test_analysis_result_contract(response_json: str) -> None:
    result = parse_response(response_json)

    assert isinstance(result, AnalysisResult)
    assert [cluster.id for cluster in result.clusters] == ["c1", "c2"]
    assert result.clusters[0].member_bas == ["A"]
    assert result.clusters[1].customer_persona == "Independent shops ordering ad hoc."
    assert result.executive_summary.policy_implications == ["Reduce concentration risk over time."]

    serialized = json.loads(result.model_dump_json(by_alias=True))
    assert set(serialized) == {"clusters", "executiveSummary"}
    assert set(serialized["clusters"][0]) == {
        "id",
        "name",
        "description",
        "customerPersona",
        "characteristics",
        "memberBAs",
    }


def test_extra_fields_are_tolerated(response_payload: dict) -> None:
    response_payload["confidence"] = 0.9
    response_payload["clusters"][0]["color"] = "#4f46e5"

    result = parse_response(json.dumps(response_payload))

    assert "confidence" not in result.model_dump(by_alias=True)
    assert len(result.clusters) == 2


def test_markdown_fences_are_stripped(response_json: str) -> None:
    result = parse_response(f"```json\n{response_json}\n```")

    assert len(result.clusters) == 2


def test_numeric_member_codes_become_strings(response_payload: dict) -> None:
    response_payload["clusters"][0]["memberBAs"] = [1001, "1002"]
    response_payload["clusters"][0]["id"] = 1

    result = parse_response(json.dumps(response_payload))

    assert result.clusters[0].member_bas == ["1001", "1002"]
    assert result.clusters[0].id == "1"


@pytest.mark.parametrize("raw", [None, "", "   \n"])
def test_empty_response_fails(raw) -> None:
    with pytest.raises(AnalysisError) as exc_info:
        parse_response(raw)
    assert exc_info.value.stage == "empty"


def test_malformed_json_fails() -> None:
    with pytest.raises(AnalysisError) as exc_info:
        parse_response('{"clusters": [')
    assert exc_info.value.stage == "json_parse"


def test_non_object_payload_fails() -> None:
    with pytest.raises(AnalysisError) as exc_info:
        parse_response("[1, 2, 3]")
    assert exc_info.value.stage == "schema"


def test_missing_policy_implications_fails(response_payload: dict) -> None:
    del response_payload["executiveSummary"]["policyImplications"]

    with pytest.raises(AnalysisError) as exc_info:
        parse_response(json.dumps(response_payload))

    assert exc_info.value.stage == "schema"
    assert any("policyImplications" in error for error in exc_info.value.errors)


@pytest.mark.parametrize(
    "field",
    ["id", "name", "description", "customerPersona", "characteristics", "memberBAs"],
)
def test_missing_cluster_field_fails(response_payload: dict, field: str) -> None:
    del response_payload["clusters"][1][field]

    with pytest.raises(AnalysisError) as exc_info:
        parse_response(json.dumps(response_payload))

    assert exc_info.value.stage == "schema"


@pytest.mark.parametrize("field", ["overview", "strategicRecommendations"])
def test_missing_summary_field_fails(response_payload: dict, field: str) -> None:
    del response_payload["executiveSummary"][field]

    with pytest.raises(AnalysisError):
        parse_response(json.dumps(response_payload))


@pytest.mark.parametrize("field", ["clusters", "executiveSummary"])
def test_missing_top_level_field_fails(response_payload: dict, field: str) -> None:
    del response_payload[field]

    with pytest.raises(AnalysisError):
        parse_response(json.dumps(response_payload))


def test_null_required_field_fails(response_payload: dict) -> None:
    response_payload["executiveSummary"]["overview"] = None

    with pytest.raises(AnalysisError):
        parse_response(json.dumps(response_payload))


def test_duplicate_cluster_ids_fail(response_payload: dict) -> None:
    response_payload["clusters"][1]["id"] = "c1"

    with pytest.raises(AnalysisError) as exc_info:
        parse_response(json.dumps(response_payload))

    assert "duplicate cluster id" in str(exc_info.value)


def test_analysis_result_is_frozen(response_json: str) -> None:
    result = parse_response(response_json)

    with pytest.raises(ValidationError):
        result.clusters = []  # type: ignore[misc]


class TestMemberCoverage:
    def test_complete_coverage(self, response_json: str, aggregated_rows) -> None:
        report = check_member_coverage(parse_response(response_json), aggregated_rows)

        assert report.is_complete
        assert report.describe() == []

    def test_reports_missing_duplicated_and_unknown(self, response_payload: dict, aggregated_rows) -> None:
        response_payload["clusters"][0]["memberBAs"] = ["A", "Z"]
        response_payload["clusters"][1]["memberBAs"] = ["A"]

        report = check_member_coverage(parse_response(json.dumps(response_payload)), aggregated_rows)

        assert report.missing == ("B",)
        assert report.duplicated == ("A",)
        assert report.unknown == ("Z",)
        assert not report.is_complete
        assert len(report.describe()) == 3
