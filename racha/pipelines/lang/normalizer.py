"""
Text normalization for Brazilian Portuguese keyword matching.

Every table lookup in the engine runs against normalized text, and every
keyword in the packs is normalized the same way when the pack is built.
"""

import re
import unicodedata
from typing import Iterable, List


_WHITESPACE = re.compile(r'\s+')


class TextNormalizer:
    """Lowercases, strips diacritics and collapses whitespace."""

    def normalize_text(self, text: str) -> str:
        """
        Normalize text for matching.

        Args:
            text: Raw user text

        Returns:
            Lowercase text without accents, single-spaced and trimmed.
            Punctuation is kept; amounts like "R$ 99,90" depend on it.
        """
        if not text:
            return ""

        text = text.lower()

        # NFD splits "ã" into "a" + combining tilde, which is then dropped
        text = unicodedata.normalize('NFD', text)
        text = ''.join(c for c in text if unicodedata.category(c) != 'Mn')
        text = unicodedata.normalize('NFC', text)

        text = _WHITESPACE.sub(' ', text)

        return text.strip()

    def normalize_keywords(self, keywords: Iterable[str]) -> List[str]:
        """
        Normalize a list of keywords, dropping empties and duplicates.

        Order is preserved; first occurrence wins.
        """
        seen = set()
        normalized = []
        for keyword in keywords:
            kw = self.normalize_text(keyword)
            if kw and kw not in seen:
                seen.add(kw)
                normalized.append(kw)
        return normalized


_default_normalizer = TextNormalizer()


def normalize(text: str) -> str:
    """Module-level shortcut for ``TextNormalizer().normalize_text``."""
    return _default_normalizer.normalize_text(text)
