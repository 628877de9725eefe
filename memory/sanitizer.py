"""Cleans generated replies before they are handed to the messaging gateway."""

import re
from typing import Optional

from .vocabulary import MemoryVocabulary

_EXCESS_BLANK_LINES = re.compile(r"\n[ \t]*\n(?:[ \t]*\n)+")


class ResponseSanitizer:
    """
    Normalises a raw model reply.

    The output carries the current signature exactly once, at the end, and
    sanitizing an already sanitized reply returns it unchanged.
    """

    def __init__(self, signature: str, vocabulary: Optional[MemoryVocabulary] = None):
        self.signature = signature.strip()
        self.vocabulary = vocabulary or MemoryVocabulary()
        # Longest first so a short marker never leaves a fragment of a longer one
        self._exact_markers = sorted(
            set(self.vocabulary.legacy_signatures) | {self.signature},
            key=len,
            reverse=True
        )

    def sanitize(self, text: Optional[str]) -> str:
        body = text or ""
        # Removing one kind of boilerplate can expose the other
        previous = None
        while body != previous:
            previous = body
            body = self.strip_generic_openings(self.strip_signatures(body))
        body = _EXCESS_BLANK_LINES.sub("\n\n", body).strip()
        if not body:
            return ""
        return f"{body}\n\n{self.signature}"

    def strip_signatures(self, text: str) -> str:
        for marker in self._exact_markers:
            text = text.replace(marker, "")
        for pattern in self.vocabulary.signature_patterns:
            text = pattern.sub("", text)
        return text

    def strip_generic_openings(self, text: str) -> str:
        text = text.lstrip()
        stripped = True
        while stripped and text:
            stripped = False
            for pattern in self.vocabulary.generic_openings:
                match = pattern.match(text)
                if match and match.end() > 0:
                    text = text[match.end():].lstrip()
                    stripped = True
        if text[:1].islower():
            text = text[0].upper() + text[1:]
        return text
