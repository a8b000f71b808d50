"""Protocol for document corpus access."""

from typing import Iterator, Protocol, runtime_checkable

from docrag.models import Document


@runtime_checkable
class Corpus(Protocol):
    """Read access to the documents eligible for indexing.

    Uses structural subtyping - no inheritance required.
    """

    def read_all_documents(self) -> Iterator[Document]:
        """Yield every document in the corpus, ordered by path."""
        ...

    def read_document(self, path: str) -> str:
        """Return the content of one document.

        Raises:
            FileNotFoundError: no document exists at path.
        """
        ...
