"""
Regional Portuguese variation processor.

Scans text against per-region slang dictionaries and rewrites regional terms
into standard vocabulary.
"""

import re
import logging
from collections import Counter
from typing import Dict, List, Optional, Tuple, Union

from racha.schemas.expense import (
    ExpressionFormality,
    Region,
    RegionalContext,
    RegionalVariation,
)
from racha.pipelines.inputs import coerce_region, ensure_text
from racha.pipelines.lang.loader import CulturalPackLoader, get_default_pack
from racha.pipelines.lang.normalizer import TextNormalizer
from racha.pipelines.lang.schema import RegionalExpression


logger = logging.getLogger(__name__)

BASE_CONFIDENCE = 0.7
DECLARED_REGION_BONUS = 0.2
COMMON_TERM_BONUS = 0.1
SHARED_TERM_PENALTY = 0.1


class RegionalVariationProcessor:
    """Detects and standardizes regionalisms."""

    def __init__(self, packs: Optional[CulturalPackLoader] = None):
        self.packs = packs or get_default_pack()
        pack = self.packs.regional_expressions
        self.normalizer = TextNormalizer()

        self._common_terms = set(pack.common_terms)
        self._shared_term_limit = pack.shared_term_limit
        self._notes = pack.cultural_notes

        self._by_region: Dict[Region, Dict[str, RegionalExpression]] = {
            region: {e.term: e for e in expressions}
            for region, expressions in pack.regions.items()
        }
        self._region_counts = Counter(
            term for expressions in self._by_region.values() for term in expressions
        )

    def _regions_to_check(self, region: Optional[Region]) -> List[Region]:
        regions = list(self._by_region)
        if region is None or region not in self._by_region:
            return regions
        return [region] + [r for r in regions if r != region]

    def is_shared(self, term: str) -> bool:
        """True when the term is listed in too many regions to be distinctive."""
        return self._region_counts[term] > self._shared_term_limit

    def variation_confidence(self, term: str, matched_region: Region, declared: Optional[Region]) -> float:
        confidence = BASE_CONFIDENCE
        if declared is not None and declared == matched_region:
            confidence += DECLARED_REGION_BONUS
        if term in self._common_terms:
            confidence += COMMON_TERM_BONUS
        if self.is_shared(term):
            confidence -= SHARED_TERM_PENALTY
        return max(0.0, min(confidence, 1.0))

    def detect(self, text: str, region: Union[Region, str, None] = None) -> List[RegionalVariation]:
        """
        Detect regional terms in text.

        The declared region's dictionary is scanned first, so a term shared
        by several regions is attributed to it. Pairs of
        (original_term, standard_term) are reported once.
        """
        normalized = self.normalizer.normalize_text(ensure_text(text))
        declared = coerce_region(region)

        variations = []
        seen = set()
        for current in self._regions_to_check(declared):
            for term, expression in self._by_region[current].items():
                if term not in normalized:
                    continue
                key = (term, expression.standard_term)
                if key in seen:
                    continue
                seen.add(key)
                variations.append(RegionalVariation(
                    region=current,
                    original_term=term,
                    standard_term=expression.standard_term,
                    confidence=self.variation_confidence(term, current, declared),
                    context=expression.meaning,
                ))

        if variations:
            logger.debug(f"Regional terms: {[v.original_term for v in variations]}")
        return variations

    def standardize(self, text: str, region: Union[Region, str, None] = None) -> str:
        """
        Replace detected regional terms with their standard form.

        Works on normalized text in a single pass; replacements are never
        rescanned.
        """
        normalized = self.normalizer.normalize_text(ensure_text(text))
        replacements = {v.original_term: v.standard_term for v in self.detect(normalized, region)}
        if not replacements:
            return normalized

        terms = sorted(replacements, key=len, reverse=True)
        pattern = re.compile(r'(?<!\w)(' + '|'.join(re.escape(t) for t in terms) + r')(?!\w)')
        return pattern.sub(lambda m: replacements[m.group(1)], normalized)

    def regional_context(self, region: Union[Region, str]) -> RegionalContext:
        """Dominant register, expressions and cultural notes of a region."""
        resolved = coerce_region(region) or Region.OUTROS
        expressions = self.expressions(resolved)
        return RegionalContext(
            region=resolved,
            formality_level=self._dominant_formality(expressions),
            common_expressions=tuple(e.term for e in expressions),
            cultural_notes=tuple(self._notes.get(resolved) or self._notes.get(Region.OUTROS, ())),
        )

    @staticmethod
    def _dominant_formality(expressions: List[RegionalExpression]) -> ExpressionFormality:
        counts = Counter(e.formality for e in expressions)
        slang = counts[ExpressionFormality.SLANG]
        informal = counts[ExpressionFormality.INFORMAL]
        formal = counts[ExpressionFormality.FORMAL]
        if slang > informal and slang > formal:
            return ExpressionFormality.SLANG
        if informal > formal:
            return ExpressionFormality.INFORMAL
        return ExpressionFormality.FORMAL

    def suggestions(self, variations: List[RegionalVariation]) -> List[str]:
        """One gloss line per detected variation."""
        lines = []
        for variation in variations:
            expression = self._by_region.get(variation.region, {}).get(variation.original_term)
            if expression is None:
                continue
            lines.append(
                f'📍 {variation.region.display_name}: "{variation.original_term}" = '
                f'"{expression.standard_term}" ({expression.meaning})'
            )
        return lines

    def all_regions(self) -> List[Region]:
        return list(self._by_region)

    def expressions(self, region: Union[Region, str]) -> List[RegionalExpression]:
        resolved = coerce_region(region)
        if resolved is None:
            return []
        return list(self._by_region.get(resolved, {}).values())

    def search(self, term: str) -> List[Tuple[Region, RegionalExpression]]:
        """Find expressions whose term or meaning contains ``term``."""
        needle = self.normalizer.normalize_text(ensure_text(term))
        if not needle:
            return []
        results = []
        for region, expressions in self._by_region.items():
            for expression in expressions.values():
                if needle in expression.term or needle in self.normalizer.normalize_text(expression.meaning):
                    results.append((region, expression))
        return results
