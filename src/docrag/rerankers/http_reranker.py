"""Reranking provider for ``/rerank`` endpoints (Jina, Cohere, SiliconFlow style)."""

import logging
from typing import Sequence

import httpx

from docrag.errors import ModelUnavailable, ProviderError

logger = logging.getLogger(__name__)


class HttpReranker:
    """Scores passages against a query through a hosted reranking model."""

    def __init__(
        self,
        base_url: str | None,
        model: str | None,
        api_key: str | None = None,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.model = model or ""
        self.api_key = api_key
        self._client = client or httpx.Client(timeout=timeout)

    def rerank(self, query: str, documents: Sequence[str]) -> list[float]:
        """Return one relevance score per document, in input order."""
        if not self.base_url or not self.model:
            raise ModelUnavailable("Rerank model is not configured")
        if not documents:
            return []

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = self._client.post(
                f"{self.base_url}/rerank",
                headers=headers,
                json={"model": self.model, "query": query, "documents": list(documents)},
            )
            response.raise_for_status()
            results = response.json()["results"]
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            raise ModelUnavailable(f"Rerank server unreachable: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Rerank request failed: {e}") from e
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ProviderError(f"Malformed rerank response: {e}") from e

        if not isinstance(results, list):
            raise ProviderError(f"Malformed rerank response: results is {type(results).__name__}")

        scores: list[float | None] = [None] * len(documents)
        for position, result in enumerate(results):
            if not isinstance(result, dict):
                raise ProviderError(f"Malformed rerank result: {result!r}")
            index = result.get("index", result.get("document_index", position))
            score = result.get("relevance_score", result.get("score"))
            if not isinstance(index, int) or not 0 <= index < len(documents) or score is None:
                raise ProviderError(f"Malformed rerank result: {result!r}")
            try:
                scores[index] = float(score)
            except (TypeError, ValueError) as e:
                raise ProviderError(f"Malformed rerank score {score!r}") from e

        if any(score is None for score in scores):
            raise ProviderError("Rerank response did not score every document")
        return [float(score) for score in scores]

    def is_available(self) -> bool:
        if not self.base_url or not self.model:
            return False
        try:
            self.rerank("rerank model check", ["first test document", "second test document"])
        except (ModelUnavailable, ProviderError) as e:
            logger.warning(f"Rerank model check failed: {e}")
            return False
        return True

    def close(self) -> None:
        self._client.close()
