"""Exception hierarchy for the indexing and retrieval engine."""


class RagError(Exception):
    """Base class for all engine errors."""


class InvalidConfig(RagError):
    """Chunking or retrieval parameters are malformed."""


class ModelUnavailable(RagError):
    """An embedding or reranking provider is unreachable or not configured."""


class ProviderError(RagError):
    """A provider call failed after the provider was reached."""


class IndexCorruption(RagError):
    """The vector index holds entries that violate its invariants.

    Attributes:
        path: Document whose entries are affected.
    """

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason
