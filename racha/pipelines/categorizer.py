"""
Keyword expense categorizer with cultural factors.
"""

import logging
from typing import Optional, Union

from racha.schemas.expense import ExpenseCategorization, Region
from racha.pipelines.inputs import coerce_region, ensure_text
from racha.pipelines.lang.loader import CulturalPackLoader, get_default_pack
from racha.pipelines.lang.matching import matched_keywords
from racha.pipelines.lang.normalizer import TextNormalizer
from racha.pipelines.regional_variations import RegionalVariationProcessor


logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "outros"
BASE_CONFIDENCE = 0.5
KEYWORD_WEIGHT = 0.3
TYPICAL_AMOUNT_BONUS = 0.1
MAX_CONFIDENCE = 0.95


class ExpenseCategorizer:
    """Assigns a category to an expense description."""

    def __init__(self, packs: Optional[CulturalPackLoader] = None):
        self.packs = packs or get_default_pack()
        self.lexicon = self.packs.expense_lexicon
        self.normalizer = TextNormalizer()
        self.regional = RegionalVariationProcessor(self.packs)

    def categorize(
        self,
        description: str,
        amount: float,
        region: Union[Region, str, None] = None,
    ) -> ExpenseCategorization:
        """
        Categorize an expense.

        The first category with a whole-word keyword hit wins. Confidence
        grows with the share of the category's keywords present and gets a
        bonus when the amount is typical for the category.

        Raises:
            TypeError: If amount is not a number
        """
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise TypeError(f"amount must be a number, got {type(amount).__name__}")

        text = self.normalizer.normalize_text(ensure_text(description))
        declared = coerce_region(region)

        category = DEFAULT_CATEGORY
        reason = self.lexicon.default_category_reason
        confidence = BASE_CONFIDENCE
        keywords = []

        for rule in self.lexicon.categories:
            keywords.extend(kw for kw in matched_keywords(text, rule.keywords, whole_word=True) if kw not in keywords)

        for rule in self.lexicon.categories:
            hits = matched_keywords(text, rule.keywords, whole_word=True)
            if not hits:
                continue
            category = rule.category
            reason = rule.reason
            confidence = BASE_CONFIDENCE + KEYWORD_WEIGHT * len(hits) / len(rule.keywords)
            if rule.typical_amount is not None:
                low, high = rule.typical_amount
                if low < amount < high:
                    confidence += TYPICAL_AMOUNT_BONUS
            break

        cultural_factors = []
        for rule in self.lexicon.cultural_factors:
            if matched_keywords(text, rule.keywords) and rule.result not in cultural_factors:
                cultural_factors.append(rule.result)
        if declared is not None:
            regional_factor = self.lexicon.regional_factors.get(declared)
            if regional_factor and regional_factor not in cultural_factors:
                cultural_factors.append(regional_factor)

        variations = self.regional.detect(text, declared)

        logger.debug(f"Categorized as '{category}' via {keywords}")

        return ExpenseCategorization(
            category=category,
            confidence=min(confidence, MAX_CONFIDENCE),
            keywords=tuple(keywords),
            cultural_factors=tuple(cultural_factors),
            regional_variations=tuple(variations),
            reason=reason,
            region=declared,
        )


_default_categorizer: Optional[ExpenseCategorizer] = None


def _get_categorizer() -> ExpenseCategorizer:
    global _default_categorizer
    if _default_categorizer is None:
        _default_categorizer = ExpenseCategorizer()
    return _default_categorizer


def categorize_expense(
    description: str,
    amount: float,
    region: Union[Region, str, None] = None,
) -> ExpenseCategorization:
    """Categorize with the process-wide categorizer."""
    return _get_categorizer().categorize(description, amount, region)
