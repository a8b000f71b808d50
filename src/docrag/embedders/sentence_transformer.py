"""SentenceTransformer-based embedding provider."""

import logging
from typing import Sequence

import numpy as np
from sentence_transformers import SentenceTransformer

from docrag.errors import ModelUnavailable, ProviderError

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder:
    """Embedding provider running a sentence-transformers model in-process.

    Uses all-MiniLM-L6-v2 by default - a fast, lightweight model
    that produces good quality embeddings for semantic search.
    """

    DEFAULT_MODEL = "all-MiniLM-L6-v2"

    def __init__(self, model_name: str | None = None):
        """Initialize the embedder.

        Args:
            model_name: Name of the sentence-transformers model to use.
                       Defaults to all-MiniLM-L6-v2.
        """
        self._model_name = model_name or self.DEFAULT_MODEL
        self._model: SentenceTransformer | None = None

    @property
    def model(self) -> SentenceTransformer:
        """Lazy-load the model on first access."""
        if self._model is None:
            try:
                self._model = SentenceTransformer(self._model_name)
            except (OSError, ValueError) as e:
                raise ModelUnavailable(
                    f"Cannot load embedding model {self._model_name}: {e}"
                ) from e
        return self._model

    @property
    def model_name(self) -> str:
        """Return identifier for the model used."""
        return self._model_name

    def embed(self, texts: Sequence[str]) -> np.ndarray:
        """Generate embeddings for a batch of texts.

        Args:
            texts: Text strings to embed

        Returns:
            numpy array of shape (len(texts), embedding_dim)
        """
        if not texts:
            return np.empty((0, 0), dtype=np.float32)

        model = self.model
        try:
            embeddings = model.encode(
                list(texts),
                convert_to_numpy=True,
                normalize_embeddings=True,  # For cosine similarity
            )
        except RuntimeError as e:
            raise ProviderError(f"Embedding failed: {e}") from e
        return embeddings

    def is_available(self) -> bool:
        try:
            self.model
        except ModelUnavailable as e:
            logger.warning(str(e))
            return False
        return True
