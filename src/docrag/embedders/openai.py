"""Embedding provider for OpenAI-compatible ``/embeddings`` endpoints."""

import logging
from typing import Sequence

import httpx
import numpy as np

from docrag.errors import ModelUnavailable, ProviderError

logger = logging.getLogger(__name__)

PROBE_TEXT = "embedding model check"


class OpenAIEmbedder:
    """Embedding provider speaking the OpenAI embeddings wire format.

    Works with OpenAI itself and with the many local servers that mimic it
    (Ollama, LM Studio, vLLM, SiliconFlow...).
    """

    def __init__(
        self,
        base_url: str | None,
        model: str | None,
        api_key: str | None = None,
        timeout: float = 60.0,
        client: httpx.Client | None = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self._model_name = model or ""
        self.api_key = api_key
        self._client = client or httpx.Client(timeout=timeout)

    @property
    def model_name(self) -> str:
        return self._model_name

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def embed(self, texts: Sequence[str]) -> np.ndarray:
        """Embed a batch of texts in one request.

        Raises:
            ModelUnavailable: base URL or model not configured, or the server is unreachable
            ProviderError: the server answered with an error or a malformed payload
        """
        if not self.base_url or not self._model_name:
            raise ModelUnavailable("Embedding model is not configured")
        if not texts:
            return np.empty((0, 0), dtype=np.float32)

        try:
            response = self._client.post(
                f"{self.base_url}/embeddings",
                headers=self._headers(),
                json={
                    "model": self._model_name,
                    "input": list(texts),
                    "encoding_format": "float",
                },
            )
            response.raise_for_status()
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            raise ModelUnavailable(f"Embedding server unreachable: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Embedding request failed: {e}") from e

        try:
            data = response.json()["data"]
            # Servers may answer out of order; "index" restores input order
            ordered = sorted(data, key=lambda item: item.get("index", 0))
            vectors = np.asarray([item["embedding"] for item in ordered], dtype=np.float32)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ProviderError(f"Malformed embedding response: {e}") from e

        if vectors.ndim != 2 or len(vectors) != len(texts):
            raise ProviderError(
                f"Embedding response has shape {vectors.shape} for {len(texts)} inputs"
            )
        return vectors

    def is_available(self) -> bool:
        try:
            self.embed([PROBE_TEXT])
        except (ModelUnavailable, ProviderError) as e:
            logger.warning(f"Embedding model check failed: {e}")
            return False
        return True

    def close(self) -> None:
        self._client.close()
