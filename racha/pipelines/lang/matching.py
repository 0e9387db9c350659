"""
Keyword matching over normalized text.

Two semantics are used by the engine: plain substring containment for most
tables, and whole-word matching where short terms would hit inside ordinary
words ("pe" in "pessoas").
"""

import re
from functools import lru_cache
from typing import Iterable, List, Optional, Sequence, Tuple


def contains(text: str, keyword: str) -> bool:
    return keyword in text


@lru_cache(maxsize=4096)
def word_pattern(keyword: str) -> 're.Pattern':
    return re.compile(r'(?<!\w)' + re.escape(keyword) + r'(?!\w)')


def contains_word(text: str, keyword: str) -> bool:
    return word_pattern(keyword).search(text) is not None


def matched_keywords(text: str, keywords: Iterable[str], whole_word: bool = False) -> List[str]:
    """Return the keywords that occur in text, in table order."""
    match = contains_word if whole_word else contains
    return [kw for kw in keywords if match(text, kw)]


def first_match(text: str, rules: Sequence, whole_word: bool = False) -> Optional[Tuple[str, str]]:
    """
    Evaluate an ordered cascade of KeywordRule, first match wins.

    Returns:
        (result, keyword) of the first rule that fires, or None
    """
    match = contains_word if whole_word else contains
    for rule in rules:
        if any(match(text, phrase) for phrase in rule.unless):
            continue
        for keyword in rule.keywords:
            if match(text, keyword):
                return rule.result, keyword
    return None
