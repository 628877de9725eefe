"""Reference documentation injected verbatim into the system prompt."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class ReferenceProvider(ABC):
    """Supplies an optional static text block for the prompt."""

    @abstractmethod
    def get_reference_text(self) -> str:
        """Return the reference block, or an empty string for none."""
        pass


class StaticReferenceProvider(ReferenceProvider):

    def __init__(self, text: str = ""):
        self.text = text

    def get_reference_text(self) -> str:
        return self.text


class DirectoryReferenceProvider(ReferenceProvider):
    """Concatenates the text and markdown files of a directory, read once."""

    EXTENSIONS = (".txt", ".md")

    def __init__(self, directory: str, max_chars: int = 8000):
        """
        Args:
            directory: Folder holding the reference documents
            max_chars: Upper bound on the injected block
        """
        self.directory = Path(directory)
        self.max_chars = max_chars
        self._cached: Optional[str] = None

    def get_reference_text(self) -> str:
        if self._cached is None:
            self._cached = self._load()
        return self._cached

    def _load(self) -> str:
        if not self.directory.is_dir():
            logger.warning(f"Reference directory not found: {self.directory}")
            return ""

        parts = []
        for path in sorted(self.directory.iterdir()):
            if path.suffix.lower() not in self.EXTENSIONS or not path.is_file():
                continue
            try:
                content = path.read_text(encoding="utf-8").strip()
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Skipping unreadable reference document {path.name}: {e}")
                continue
            if content:
                parts.append(f"### {path.stem}\n{content}")

        text = "\n\n".join(parts)
        if len(text) > self.max_chars:
            logger.warning(
                f"Reference documents truncated from {len(text)} to {self.max_chars} characters"
            )
            text = text[:self.max_chars].rstrip()

        logger.info(f"Loaded {len(parts)} reference documents from {self.directory}")
        return text
