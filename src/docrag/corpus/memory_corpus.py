"""Corpus held in memory, for hosts that own their own file layer."""

from typing import Iterator, Mapping

from docrag.models import Document


class MemoryCorpus:
    """Documents kept in a path -> content mapping."""

    def __init__(self, documents: Mapping[str, str] | None = None):
        self.documents: dict[str, str] = dict(documents or {})

    def read_all_documents(self) -> Iterator[Document]:
        for path in sorted(self.documents):
            yield Document(path=path, content=self.documents[path])

    def read_document(self, path: str) -> str:
        try:
            return self.documents[path]
        except KeyError:
            raise FileNotFoundError(path) from None
