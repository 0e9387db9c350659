"""
Cultural context analysis for Brazilian shared-expense messages.

Labels a message with the social scenario, region, formality, time of day,
group type, payment-method hint and social dynamics. Each detector is an
independent pass over the normalized text; the analyzer always returns a
fully populated CulturalContext and reports weak evidence through confidence.
"""

import re
import logging
from typing import List, NamedTuple, Optional, Tuple, Union

from racha.schemas.expense import (
    CulturalContext,
    FormalityLevel,
    GroupType,
    PaymentMethodHint,
    Region,
    Scenario,
    SocialDynamics,
    TimeOfDay,
)
from racha.pipelines.inputs import coerce_region, ensure_text
from racha.pipelines.lang.loader import CulturalPackLoader, get_default_pack
from racha.pipelines.lang.matching import first_match, matched_keywords
from racha.pipelines.lang.normalizer import TextNormalizer


logger = logging.getLogger(__name__)

_PUNCTUATION = re.compile(r'[^\w\s]')
_WHITESPACE = re.compile(r'\s+')

BASE_CONFIDENCE = 0.7
PATTERN_WEIGHT = 0.4
SLANG_STEP = 0.15
SLANG_CAP = 0.3
FORMALITY_BONUS = 0.15
REGION_BONUS = 0.15
STRONG_PATTERN_THRESHOLD = 0.8
STRONG_PATTERN_BONUS = 0.1

SCENARIO_SUGGESTIONS = {
    Scenario.RODIZIO: "💡 No rodízio, cada pessoa paga uma rodada ou divide igualmente",
    Scenario.HAPPY_HOUR: "🍺 No happy hour, geralmente divide igual ou por consumo",
    Scenario.CHURRASCO: "🥩 No churrasco, costuma dividir por família ou igualmente",
    Scenario.ANIVERSARIO: "🎂 No aniversário, o anfitrião pode pagar ou fazer vaquinha",
    Scenario.VIAGEM: "✈️ Na viagem, divide por pessoa ou por família",
    Scenario.VAQUINHA: "💰 Na vaquinha, cada um contribui igualmente",
}


class PatternMatch(NamedTuple):
    """A pattern from the database that matched the text."""
    name: str
    confidence: float
    keywords: Tuple[str, ...]


class CulturalContextAnalyzer:
    """Rule-based analyzer backed by the cultural pattern pack."""

    def __init__(self, packs: Optional[CulturalPackLoader] = None):
        self.packs = packs or get_default_pack()
        self.tables = self.packs.cultural_patterns
        self.normalizer = TextNormalizer()

    def prepare(self, text: str) -> str:
        """Normalize and turn punctuation into spaces."""
        text = self.normalizer.normalize_text(ensure_text(text))
        return _WHITESPACE.sub(' ', _PUNCTUATION.sub(' ', text)).strip()

    def analyze(self, text: str, region: Union[Region, str, None] = None) -> CulturalContext:
        """
        Analyze text and extract the cultural context.

        Args:
            text: Raw or normalized message
            region: Declared region (Region, value, display name or state code)

        Returns:
            CulturalContext; never raises for str input
        """
        prepared = self.prepare(text)
        declared = coerce_region(region)

        patterns = self.detect_patterns(prepared)
        slang = self.detect_slang(prepared)
        detected_region = self.detect_region(prepared, declared)
        formality = self.detect_formality(prepared, detected_region)
        time_of_day = self.detect_time_of_day(prepared)
        group_type = self.detect_group_type(prepared)
        scenario = self.resolve_scenario(prepared, patterns)
        payment = self.detect_payment_method(prepared)
        dynamics = self.resolve_social_dynamics(prepared, patterns)

        confidence = self.calculate_confidence(patterns, slang, formality, detected_region)

        evidence = [f"pattern:{p.name}={p.confidence:.3f}" for p in patterns]
        evidence.extend(f"slang:{term}" for term in slang)
        if declared is not None:
            evidence.append(f"region:declared:{declared.value}")
        elif detected_region != Region.OUTROS:
            evidence.append(f"region:detected:{detected_region.value}")

        if patterns:
            logger.debug(f"Top pattern '{patterns[0].name}' ({patterns[0].confidence:.3f}) -> {scenario.value}")
        else:
            logger.debug(f"No pattern matched, scenario fallback -> {scenario.value}")

        return CulturalContext(
            scenario=scenario,
            group_type=group_type,
            region=detected_region,
            time_of_day=time_of_day,
            formality_level=formality,
            payment_method_hint=payment,
            social_dynamics=dynamics,
            confidence=confidence,
            evidence=tuple(evidence),
        )

    # ------------------------------------------------------------------
    # Detectors
    # ------------------------------------------------------------------

    def detect_patterns(self, text: str) -> List[PatternMatch]:
        """Score every pattern by matched/total keywords, best first."""
        detected = []
        for name, pattern in self.tables.patterns.items():
            hits = matched_keywords(text, pattern.keywords)
            if hits:
                ratio = len(hits) / len(pattern.keywords)
                detected.append(PatternMatch(name, min(pattern.confidence * ratio, 1.0), tuple(hits)))

        # Stable sort keeps database order on ties
        return sorted(detected, key=lambda p: p.confidence, reverse=True)

    def detect_slang(self, text: str) -> List[str]:
        detected = []
        for terms in self.tables.slang.values():
            detected.extend(matched_keywords(text, terms))
        return detected

    def detect_region(self, text: str, declared: Optional[Region] = None) -> Region:
        """Declared region wins; otherwise the first self-identifying term."""
        if declared is not None:
            return declared
        hit = first_match(text, self.tables.region_terms, whole_word=True)
        return Region(hit[0]) if hit else Region.OUTROS

    def formality_score(self, text: str, region: Region) -> float:
        lexicon = self.tables.formality
        score = 0.0
        score += lexicon.formal_weight * len(matched_keywords(text, lexicon.formal, whole_word=True))
        score += lexicon.informal_weight * len(matched_keywords(text, lexicon.informal, whole_word=True))
        score += lexicon.very_informal_weight * len(matched_keywords(text, lexicon.very_informal, whole_word=True))

        register = self.tables.regional_register.get(region)
        if register is not None:
            score += lexicon.regional_weight * len(matched_keywords(text, register.formal))
            score -= lexicon.regional_weight * len(matched_keywords(text, register.informal))
        return score

    def detect_formality(self, text: str, region: Region) -> FormalityLevel:
        lexicon = self.tables.formality
        score = self.formality_score(text, region)
        if score >= lexicon.profissional_threshold:
            return FormalityLevel.PROFISSIONAL
        if score >= lexicon.formal_threshold:
            return FormalityLevel.FORMAL
        if score >= lexicon.informal_threshold:
            return FormalityLevel.INFORMAL
        return FormalityLevel.MUITO_INFORMAL

    def detect_time_of_day(self, text: str) -> TimeOfDay:
        hit = first_match(text, self.tables.time_of_day)
        return TimeOfDay(hit[0]) if hit else TimeOfDay.NOITE

    def detect_group_type(self, text: str) -> GroupType:
        hit = first_match(text, self.tables.group_types)
        return GroupType(hit[0]) if hit else GroupType.GRUPO_MISTO

    def resolve_scenario(self, text: str, patterns: List[PatternMatch]) -> Scenario:
        """Top pattern's first scenario, else the fallback scan."""
        if patterns:
            return self.tables.patterns[patterns[0].name].scenarios[0]
        hit = first_match(text, self.tables.scenario_fallback)
        return Scenario(hit[0]) if hit else Scenario.OUTROS

    def detect_payment_method(self, text: str) -> PaymentMethodHint:
        hit = first_match(text, self.tables.payment_methods)
        return PaymentMethodHint(hit[0]) if hit else PaymentMethodHint.PIX

    def resolve_social_dynamics(self, text: str, patterns: List[PatternMatch]) -> SocialDynamics:
        """Top pattern's first dynamic, else the ordered fallback scan."""
        if patterns:
            return self.tables.patterns[patterns[0].name].social_dynamics[0]
        hit = first_match(text, self.tables.social_dynamics)
        return SocialDynamics(hit[0]) if hit else SocialDynamics.IGUAL

    def calculate_confidence(
        self,
        patterns: List[PatternMatch],
        slang: List[str],
        formality: FormalityLevel,
        region: Region,
    ) -> float:
        confidence = BASE_CONFIDENCE

        if patterns:
            confidence += patterns[0].confidence * PATTERN_WEIGHT

        if slang:
            confidence += min(len(slang) * SLANG_STEP, SLANG_CAP)

        if formality in (FormalityLevel.FORMAL, FormalityLevel.INFORMAL):
            confidence += FORMALITY_BONUS

        if region != Region.OUTROS:
            confidence += REGION_BONUS

        if patterns and patterns[0].confidence > STRONG_PATTERN_THRESHOLD:
            confidence += STRONG_PATTERN_BONUS

        return max(0.0, min(confidence, 1.0))

    def suggestions(self, context: CulturalContext) -> List[str]:
        """Advice strings for the detected context."""
        suggestions = []

        scenario_tip = SCENARIO_SUGGESTIONS.get(context.scenario)
        if scenario_tip:
            suggestions.append(scenario_tip)

        if context.region != Region.OUTROS:
            suggestions.append(f"📍 Considerando o contexto regional de {context.region.display_name}")

        if context.payment_method_hint == PaymentMethodHint.PIX:
            suggestions.append("💳 PIX é o método mais rápido para transferências")

        return suggestions


_default_analyzer: Optional[CulturalContextAnalyzer] = None


def _get_analyzer() -> CulturalContextAnalyzer:
    global _default_analyzer
    if _default_analyzer is None:
        _default_analyzer = CulturalContextAnalyzer()
    return _default_analyzer


def analyze_cultural_context(text: str, region: Union[Region, str, None] = None) -> CulturalContext:
    """Analyze a message with the process-wide analyzer."""
    return _get_analyzer().analyze(text, region)
