"""Embedding providers for vector generation.

``SentenceTransformerEmbedder`` lives in ``docrag.embedders.sentence_transformer``
and is imported on demand, since loading it pulls in torch.
"""

from docrag.embedders.openai import OpenAIEmbedder

__all__ = ["OpenAIEmbedder"]
