"""LLM adapters for the BA cluster analysis.

Provides a base interface and concrete adapters for OpenAI-compatible
APIs (Gemini is reached through its OpenAI-compatible endpoint) and a
deterministic mock for testing.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional

from openai import AsyncOpenAI

from app.errors import AnalysisError
from llm_synthesis.prompt_builder import AnalysisRequest

if TYPE_CHECKING:
    from app.config import AnalysisSettings

logger = logging.getLogger(__name__)

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


class BaseLLMAdapter(ABC):
    """Abstract base for all LLM adapters."""

    @abstractmethod
    async def generate(self, request: AnalysisRequest) -> str:
        """Send a request to the LLM and return the raw response text.

        Args:
            request: The schema-constrained analysis request.

        Returns:
            Raw string response from the model (expected to be JSON).
        """


class OpenAILLMAdapter(BaseLLMAdapter):
    """Adapter for OpenAI-compatible chat completion APIs.

    Sends one non-streaming completion with a JSON-schema response
    format and the low temperature carried by the request.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.5-flash",
        max_tokens: int = 8192,
        base_url: Optional[str] = GEMINI_OPENAI_BASE_URL,
    ) -> None:
        """Initialise the OpenAI-compatible adapter.

        Args:
            api_key: Service credential. Required; no environment fallback.
            model: Model identifier.
            max_tokens: Maximum tokens in the completion.
            base_url: Optional base URL for OpenAI-compatible endpoints.

        Raises:
            AnalysisError: If ``api_key`` is missing or blank.
        """
        if not api_key or not api_key.strip():
            raise AnalysisError("API Key not found", stage="credential")

        client_kwargs: dict = {"api_key": api_key.strip()}
        if base_url:
            client_kwargs["base_url"] = base_url

        self._client = AsyncOpenAI(**client_kwargs)
        self._model = model
        self._max_tokens = max_tokens

    async def generate(self, request: AnalysisRequest) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": request.prompt}],
            temperature=request.temperature,
            max_tokens=self._max_tokens,
            stream=False,
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": request.schema_name,
                    "schema": request.response_schema,
                },
            },
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


_MOCK_TIERS = (
    ("High Value Partners", "Major Dealers"),
    ("Core Accounts", "Established Retailers"),
    ("Long Tail", "Small Retailers and Ad-hoc Contractors"),
)


class MockLLMAdapter(BaseLLMAdapter):
    """Deterministic adapter that returns a schema-valid JSON response.

    Business areas are split into tiers by total-amount rank so every
    input ba lands in exactly one cluster. Used for local runs and CI
    pipelines where no LLM API is available.
    """

    def __init__(self, cluster_count: int = 3) -> None:
        self._cluster_count = max(1, cluster_count)

    async def generate(self, request: AnalysisRequest) -> str:
        ranked = sorted(request.records, key=lambda row: row.total_amount, reverse=True)
        tier_count = max(1, min(self._cluster_count, len(ranked)))
        buckets: List[List[str]] = [[] for _ in range(tier_count)]
        for index, row in enumerate(ranked):
            buckets[index * tier_count // len(ranked)].append(row.ba)

        clusters = []
        for index, members in enumerate(buckets):
            name, persona = _MOCK_TIERS[min(index, len(_MOCK_TIERS) - 1)]
            clusters.append(
                {
                    "id": f"cluster-{index + 1}",
                    "name": name,
                    "description": f"Mock segment {index + 1} ranked by total amount.",
                    "customerPersona": persona,
                    "characteristics": [
                        f"{len(members)} business area(s)",
                        "Assigned by total-amount rank",
                    ],
                    "memberBAs": members,
                }
            )

        payload = {
            "clusters": clusters,
            "executiveSummary": {
                "overview": "Mock analysis for testing purposes.",
                "strategicRecommendations": ["Verify integration with the analysis service."],
                "policyImplications": ["No real policy impact - this is a test fixture."],
            },
        }
        return json.dumps(payload, indent=2, ensure_ascii=False)


def build_adapter(settings: "AnalysisSettings") -> BaseLLMAdapter:
    """Instantiate the adapter selected by ``settings.adapter``.

    adapter=mock   -> MockLLMAdapter  (testing, no API key required)
    adapter=openai -> OpenAILLMAdapter (default)
    """
    if settings.adapter == "mock":
        logger.info("Using mock LLM adapter")
        return MockLLMAdapter(cluster_count=settings.cluster_count)

    return OpenAILLMAdapter(
        api_key=settings.api_key,
        model=settings.model,
        max_tokens=settings.max_tokens,
        base_url=settings.base_url,
    )
