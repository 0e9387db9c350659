"""
Keyword pack system for the expense engine.

Keeps every Portuguese keyword table in validated YAML instead of
hardcoding terms in the pipeline.
"""

from .loader import CulturalPackLoader, get_default_pack
from .normalizer import TextNormalizer, normalize
from .schema import (
    CulturalPattern,
    CulturalPatternPack,
    ExpenseLexicon,
    KeywordRule,
    RegionalExpression,
    RegionalExpressionPack,
)

__all__ = [
    "CulturalPackLoader",
    "get_default_pack",
    "TextNormalizer",
    "normalize",
    "CulturalPattern",
    "CulturalPatternPack",
    "ExpenseLexicon",
    "KeywordRule",
    "RegionalExpression",
    "RegionalExpressionPack",
]
