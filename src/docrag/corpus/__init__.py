"""Document corpus implementations."""

from docrag.corpus.folder_corpus import FolderCorpus
from docrag.corpus.memory_corpus import MemoryCorpus

__all__ = ["FolderCorpus", "MemoryCorpus"]
