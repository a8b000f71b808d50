"""Protocol for embedding model providers."""

from typing import Protocol, Sequence, runtime_checkable

import numpy as np


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Protocol for embedding model providers.

    Allows swapping between local models (sentence-transformers),
    OpenAI-compatible HTTP endpoints, or test doubles.
    """

    @property
    def model_name(self) -> str:
        """Return identifier for the model used."""
        ...

    def embed(self, texts: Sequence[str]) -> np.ndarray:
        """Generate embeddings for a batch of texts.

        Returns: numpy array of shape (len(texts), embedding_dim), in input order.

        Raises:
            ModelUnavailable: the model is not configured or cannot be reached.
            ProviderError: the call reached the provider but failed.
        """
        ...

    def is_available(self) -> bool:
        """Health check used to gate enablement. Never raises."""
        ...
