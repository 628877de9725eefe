"""Static vocabulary shared by the summarizer and sanitizer."""

import re
from pathlib import Path
from typing import List, Optional

import yaml

DEFAULT_VOCABULARY_PATH = Path(__file__).parent.parent / "data" / "memory_vocabulary.yaml"


class MemoryVocabulary:
    """Category taxonomy plus the phrase patterns used to clean replies."""

    def __init__(self, path: Optional[str] = None):
        """
        Load vocabulary.

        Args:
            path: Path to memory_vocabulary.yaml (defaults to data/ in the repo)
        """
        with open(path or DEFAULT_VOCABULARY_PATH, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        self.categories: List[str] = data.get("categories") or ["Other"]
        self.fallback_category: str = self.categories[-1]
        self.generic_openings = [
            re.compile(pattern, re.IGNORECASE)
            for pattern in data.get("generic_openings", [])
        ]
        self.legacy_signatures: List[str] = data.get("legacy_signatures", [])
        self.signature_patterns = [
            re.compile(pattern, re.IGNORECASE | re.MULTILINE)
            for pattern in data.get("signature_patterns", [])
        ]
