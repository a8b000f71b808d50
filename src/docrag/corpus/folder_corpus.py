"""Corpus backed by a local folder of markdown notes."""

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator

from docrag.models import Document

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".md",)


class FolderCorpus:
    """Markdown documents below a workspace folder."""

    def __init__(self, root: Path | str, extensions: Iterable[str] = DEFAULT_EXTENSIONS):
        self.root = Path(root)
        self.extensions = tuple(ext.lower() for ext in extensions)

    def accepts(self, path: str | Path) -> bool:
        """Check whether a corpus-relative path is eligible for indexing."""
        rel = Path(path)
        return rel.suffix.lower() in self.extensions and not self._should_skip(rel)

    def read_all_documents(self) -> Iterator[Document]:
        """Yield documents from the folder recursively, ordered by path.

        Unreadable files are logged and skipped.
        """
        for rel_path in self._list_paths():
            full_path = self.root / rel_path
            try:
                content = full_path.read_text(encoding="utf-8", errors="replace")
                modified_at = full_path.stat().st_mtime
            except (PermissionError, OSError) as e:
                logger.warning(f"Skipping unreadable file {rel_path}: {e}")
                continue
            yield Document(path=rel_path, content=content, modified_at=modified_at)

    def read_document(self, path: str) -> str:
        return (self.root / path).read_text(encoding="utf-8", errors="replace")

    def _list_paths(self) -> list[str]:
        paths = []
        for root, dirs, files in os.walk(self.root):
            # Prune hidden directories (.docrag, .git...) before descending
            dirs[:] = [d for d in dirs if not d.startswith(".")]
            for filename in files:
                rel_path = (Path(root) / filename).relative_to(self.root)
                if self.accepts(rel_path):
                    paths.append(rel_path.as_posix())
        return sorted(paths)

    def _should_skip(self, path: Path) -> bool:
        """Skip hidden files and common tool directories."""
        parts = path.parts

        if any(part.startswith(".") for part in parts):
            return True

        skip_patterns = {
            "__pycache__",
            "node_modules",
            "venv",
            "dist",
            "build",
        }

        return any(part in skip_patterns for part in parts)
