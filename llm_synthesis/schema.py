"""Structured output schema for the BA cluster analysis."""

from typing import Any, List, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class _WireModel(BaseModel):
    """Base for models exchanged with the LLM using camelCase keys."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )


class ClusterData(_WireModel):
    """One segment identified by the analysis."""

    id: str
    name: str
    description: str
    customer_persona: str = Field(alias="customerPersona")
    characteristics: List[str]
    member_bas: List[str] = Field(alias="memberBAs")

    @field_validator("id", "member_bas", mode="before")
    @classmethod
    def _coerce_codes(cls, value: Any) -> Any:
        # BA codes and cluster ids often come back as bare numbers.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, list):
            return [
                str(item)
                if isinstance(item, (int, float)) and not isinstance(item, bool)
                else item
                for item in value
            ]
        return value


class ExecutiveInsight(_WireModel):
    """Executive-level narrative accompanying the clusters."""

    overview: str
    strategic_recommendations: List[str] = Field(alias="strategicRecommendations")
    policy_implications: List[str] = Field(alias="policyImplications")


class AnalysisResult(_WireModel):
    """Validated result of one analysis run."""

    clusters: List[ClusterData]
    executive_summary: ExecutiveInsight = Field(alias="executiveSummary")

    @model_validator(mode="after")
    def _unique_cluster_ids(self) -> "AnalysisResult":
        seen: Set[str] = set()
        for cluster in self.clusters:
            if cluster.id in seen:
                raise ValueError(f"duplicate cluster id '{cluster.id}'")
            seen.add(cluster.id)
        return self


def _string_array(description: str) -> dict:
    return {"type": "array", "items": {"type": "string"}, "description": description}


def build_response_schema(language: str) -> dict:
    """Return the JSON schema the analysis service must honour.

    Args:
        language: Natural language required for narrative fields.

    Returns:
        A JSON-Schema dict using the camelCase wire names.
    """
    in_language = f"Written in {language}."
    return {
        "type": "object",
        "properties": {
            "clusters": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "name": {
                            "type": "string",
                            "description": (
                                "Meaningful segment name, e.g. 'High Spend Group'. "
                                + in_language
                            ),
                        },
                        "description": {
                            "type": "string",
                            "description": (
                                "Detailed description of the segment's behaviour. "
                                + in_language
                            ),
                        },
                        "customerPersona": {
                            "type": "string",
                            "description": (
                                "Who these business areas are and what kind of "
                                "business they run; an in-depth profile. "
                                + in_language
                            ),
                        },
                        "characteristics": _string_array(
                            "3-4 distinguishing traits. " + in_language
                        ),
                        "memberBAs": _string_array(
                            "The ba values that belong to this segment."
                        ),
                    },
                    "required": [
                        "id",
                        "name",
                        "description",
                        "customerPersona",
                        "characteristics",
                        "memberBAs",
                    ],
                },
            },
            "executiveSummary": {
                "type": "object",
                "properties": {
                    "overview": {
                        "type": "string",
                        "description": (
                            "Executive summary focused on key insights. " + in_language
                        ),
                    },
                    "strategicRecommendations": _string_array(
                        "Actionable strategic recommendations. " + in_language
                    ),
                    "policyImplications": _string_array(
                        "Long-term policy implications. " + in_language
                    ),
                },
                "required": [
                    "overview",
                    "strategicRecommendations",
                    "policyImplications",
                ],
            },
        },
        "required": ["clusters", "executiveSummary"],
    }
