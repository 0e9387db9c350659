"""
Expense NLP processor.

Turns a free-form Portuguese message into an ExpenseInterpretation:

    normalize -> cultural context -> participants -> amounts
              -> splitting method -> regional variations -> confidence

Classification is delegated to the cultural analyzer and the regional
processor; this module owns participant/amount extraction and the
splitting-method cascade.
"""

import re
import time
import logging
from typing import Dict, List, Optional, Tuple, Union

from racha.config.engine_config import EngineConfig
from racha.schemas.expense import (
    Amount,
    AmountType,
    CulturalContext,
    ExpenseInterpretation,
    Participant,
    ParticipantType,
    Region,
    RegionalVariation,
    Scenario,
    SplittingMethod,
)
from racha.pipelines.cultural_context import CulturalContextAnalyzer
from racha.pipelines.inputs import coerce_region, ensure_text
from racha.pipelines.lang.loader import CulturalPackLoader, get_default_pack
from racha.pipelines.lang.matching import contains_word, first_match, matched_keywords, word_pattern
from racha.pipelines.lang.normalizer import TextNormalizer
from racha.pipelines.regional_variations import RegionalVariationProcessor


logger = logging.getLogger(__name__)

# Brazilian amount: "1.250,00", "99,90", "12.50", "120". Never the prefix of a longer number.
_NUMBER = r'(\d{1,3}(?:\.\d{3})+(?:,\d{1,2})?|\d+(?:[.,]\d{1,2})?)(?!\d|[.,]\d)'
_LEAD = r'(?<![\w.,])'

CURRENCY_PATTERNS = [
    re.compile(r'(?<![a-z])r\$\s*' + _NUMBER, re.IGNORECASE),
    re.compile(_LEAD + _NUMBER + r'\s*(?:reais|real)(?!\w)', re.IGNORECASE),
    re.compile(_LEAD + _NUMBER + r'\s*r\$', re.IGNORECASE),
    re.compile(_LEAD + _NUMBER + r'\s*(?:pilas?|contos?)(?!\w)', re.IGNORECASE),
]

DISCOUNT_PATTERNS = [
    re.compile(r'(?:desconto|promocao)\s*(?:de\s*)?(\d+(?:[.,]\d+)?)\s*%'),
    re.compile(r'(\d+(?:[.,]\d+)?)\s*%\s*(?:de\s*)?(?:desconto|promocao)'),
]

FALLBACK_PATTERNS = [
    re.compile(r'(\d+(?:[.,]\d+)?)\s*(?:reais|real|r\$|pilas?|contos?)', re.IGNORECASE),
    re.compile(r'(?:reais|real|r\$|pilas?|contos?)\s*(\d+(?:[.,]\d+)?)', re.IGNORECASE),
]

AMOUNT_BASE_CONFIDENCE = 0.8
NUMBER_WORD_CONFIDENCE = 0.8
DISCOUNT_CONFIDENCE = 0.9
FALLBACK_CONFIDENCE = 0.6
WINDOW_BEFORE = 3
WINDOW_AFTER = 2

# Clause punctuation; a comma or dot inside "100,00" is not a break.
CLAUSE_BREAK = re.compile(r'[,;.!?](?!\d)')

# Labels that may trail the amount loosely; the rest must be attached to it.
PER_UNIT_TYPES = {AmountType.PER_PERSON, AmountType.PER_GROUP}

PRONOUN_CONFIDENCE = 0.9
GROUP_NOUN_CONFIDENCE = 0.8
NUMERIC_CONFIDENCE = 0.9
IMPLIED_CONFIDENCE = 0.5

METHOD_CONFIRMATIONS = {
    SplittingMethod.EQUAL: "✅ Vou dividir igualmente entre todos",
    SplittingMethod.BY_CONSUMPTION: "🍽️ Vou dividir por consumo individual",
    SplittingMethod.HOST_PAYS: "🎉 O anfitrião vai pagar, depois acertamos",
    SplittingMethod.VAQUINHA: "💰 Vou fazer uma vaquinha entre todos",
    SplittingMethod.BY_FAMILY: "👨‍👩‍👧‍👦 Vou dividir por família",
    SplittingMethod.COMPLEX: "🔄 Vou analisar a divisão complexa",
}


def parse_value(raw: str) -> Optional[float]:
    """
    Parse a Brazilian-formatted number.

    "1.250,00" -> 1250.0, "99,90" -> 99.9, "1.250" -> 1250.0, "12.50" -> 12.5
    """
    s = raw.strip().replace(' ', '').replace(' ', '')
    if ',' in s:
        s = s.replace('.', '').replace(',', '.')
    else:
        parts = s.split('.')
        if len(parts) > 1 and all(p.isdigit() for p in parts) and len(parts[-1]) == 3:
            s = ''.join(parts)
    try:
        return float(s)
    except ValueError:
        return None


def _words_pattern(words: List[str]) -> str:
    alternation = '|'.join(re.escape(w) for w in sorted(words, key=len, reverse=True))
    return r'(?<!\w)(' + alternation + r')(?!\w)'


class ExpenseNLPProcessor:
    """Orchestrates the expense interpretation pipeline."""

    def __init__(self, packs: Optional[CulturalPackLoader] = None, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig.from_env()
        if packs is None:
            if self.config.pack_dir:
                packs = CulturalPackLoader(self.config.pack_dir, strict=self.config.strict_packs)
            else:
                packs = get_default_pack()
        self.packs = packs
        self.lexicon = packs.expense_lexicon
        self.normalizer = TextNormalizer()
        self.analyzer = CulturalContextAnalyzer(packs)
        self.regional = RegionalVariationProcessor(packs)

        people = self.lexicon.participants
        self._individual_re = re.compile(_words_pattern(list(people.individual_pronouns)))
        self._group_pronoun_re = re.compile(_words_pattern(list(people.group_pronouns)))
        self._group_noun_re = re.compile(_words_pattern(
            list(people.group_nouns) + list(people.family_nouns) + list(people.couple_nouns)
        ))
        self._numeric_re = re.compile(
            r'(?<![\d.,])(\d+)\s*' + _words_pattern(list(people.numeric_nouns))
        )

        number_word = _words_pattern(list(self.lexicon.number_words))
        self._number_word_token_re = re.compile(number_word)
        self._number_words_re = re.compile(
            r'(' + number_word + r'(?:\s+(?:e\s+)?' + number_word + r')*)\s*(?:reais|real)(?!\w)'
        )

    def process(self, text: str, region: Union[Region, str, None] = None) -> ExpenseInterpretation:
        """
        Interpret a shared-expense message.

        Args:
            text: Raw user text (None is treated as empty)
            region: Declared region from the user profile, if any

        Returns:
            ExpenseInterpretation; never raises for str input
        """
        start = time.perf_counter()

        original = ensure_text(text)
        normalized = self.normalizer.normalize_text(original)
        declared = coerce_region(region)

        context = self.analyzer.analyze(normalized, declared)
        participants = self.extract_participants(normalized)
        amounts = self.extract_amounts(normalized, context)
        method = self.determine_splitting_method(normalized, context)
        total = self.total_amount(amounts)

        if declared is not None:
            variation_region = declared
        elif context.region != Region.OUTROS:
            variation_region = context.region
        else:
            variation_region = None
        variations = self.regional.detect(normalized, variation_region)

        suggestions = self.suggestions(context, participants, amounts, method)
        confidence = self.overall_confidence(context, participants, amounts, variations)

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.debug(
            f"scenario={context.scenario.value} method={method.value} "
            f"participants={len(participants)} amounts={len(amounts)} confidence={confidence:.3f}"
        )

        return ExpenseInterpretation(
            original_text=original,
            normalized_text=normalized,
            participants=tuple(participants),
            amounts=tuple(amounts),
            total_amount=total,
            splitting_method=method,
            cultural_context=context,
            confidence=confidence,
            suggestions=tuple(suggestions),
            regional_variations=tuple(variations),
            processing_time_ms=elapsed_ms,
        )

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    def _display_name(self, word: str) -> str:
        return self.lexicon.participants.canonical_names.get(word, word.capitalize())

    def _noun_type(self, word: str) -> ParticipantType:
        people = self.lexicon.participants
        if word in people.family_nouns or word.startswith('famil'):
            return ParticipantType.FAMILY
        if word in people.couple_nouns:
            return ParticipantType.COUPLE
        return ParticipantType.GROUP

    def extract_participants(self, text: str) -> List[Participant]:
        """
        Extract who is splitting.

        Three or more individual pronouns are taken as an exhaustive list.
        Otherwise group pronouns, group nouns and "<n> pessoas" counts are
        added, and a bare split verb implies one generic group.
        """
        participants: List[Participant] = []
        seen = set()

        def add(participant: Participant) -> None:
            key = participant.name.lower()
            if key not in seen:
                seen.add(key)
                participants.append(participant)

        for match in self._individual_re.finditer(text):
            add(Participant(
                name=self._display_name(match.group(1)),
                type=ParticipantType.PERSON,
                count=1,
                confidence=PRONOUN_CONFIDENCE,
                context="individual pronoun",
            ))

        if len(participants) >= 3:
            return participants

        for match in self._group_pronoun_re.finditer(text):
            add(Participant(
                name=self._display_name(match.group(1)),
                type=ParticipantType.GROUP,
                count=1,
                confidence=PRONOUN_CONFIDENCE,
                context="group pronoun",
            ))

        for match in self._group_noun_re.finditer(text):
            word = match.group(1)
            add(Participant(
                name=self._display_name(word),
                type=self._noun_type(word),
                count=1,
                confidence=GROUP_NOUN_CONFIDENCE,
                context="group noun",
            ))

        for match in self._numeric_re.finditer(text):
            count = int(match.group(1))
            noun = match.group(2)
            if not 1 <= count <= self.config.max_participants:
                logger.debug(f"Discarding implausible participant count: {count} {noun}")
                continue
            add(Participant(
                name=f"{count} {noun}",
                type=self._noun_type(noun),
                count=count,
                confidence=NUMERIC_CONFIDENCE,
                context="numeric group",
            ))

        if not participants and matched_keywords(text, self.lexicon.participants.split_verbs):
            add(Participant(
                name="Grupo",
                type=ParticipantType.GROUP,
                count=1,
                confidence=IMPLIED_CONFIDENCE,
                context="implied by split verb",
            ))

        return participants

    # ------------------------------------------------------------------
    # Amounts
    # ------------------------------------------------------------------

    def _plausible(self, value: Optional[float]) -> bool:
        return value is not None and 0 < value < self.config.max_amount

    @staticmethod
    def _clause_bounds(text: str, span: Tuple[int, int], spans: List[Tuple[int, int]]) -> Tuple[int, int]:
        """Clip the context of an amount to its clause and away from neighbouring amounts."""
        start, end = span
        left = max(
            [m.end() for m in CLAUSE_BREAK.finditer(text, 0, start)]
            + [e for s, e in spans if e <= start]
            + [0]
        )
        following = CLAUSE_BREAK.search(text, end)
        right = min(
            [following.start() if following else len(text)]
            + [s for s, e in spans if s >= end]
        )
        return left, right

    def _window(self, text: str, start: int, end: int, left: int = 0, right: Optional[int] = None):
        before = text[left:start].split()[-WINDOW_BEFORE:]
        after = text[end:right].split()[:WINDOW_AFTER]
        return before, after

    def amount_type(self, text: str, start: int, end: int, left: int = 0, right: Optional[int] = None) -> AmountType:
        """
        Classify an amount by the words around it.

        A label before the amount wins. After the amount, "por pessoa" style
        labels count anywhere in the window, while discount/tax/tip only
        count when attached ("R$ 10 de desconto").
        """
        before, after = self._window(text, start, end, left, right)
        hit = first_match(' '.join(before + [text[start:end]]), self.lexicon.amount_types, whole_word=True)
        if hit:
            return AmountType(hit[0])

        trailing = ' '.join(after)
        attached = trailing[3:] if trailing.startswith('de ') else trailing
        for rule in self.lexicon.amount_types:
            if any(contains_word(trailing, phrase) for phrase in rule.unless):
                continue
            kind = AmountType(rule.result)
            for keyword in rule.keywords:
                if kind in PER_UNIT_TYPES:
                    found = contains_word(trailing, keyword)
                else:
                    found = word_pattern(keyword).match(attached) is not None
                if found:
                    return kind
        return AmountType.TOTAL

    def amount_description(self, text: str, start: int, end: int, left: int = 0, right: Optional[int] = None) -> str:
        before, after = self._window(text, start, end, left, right)
        return ' '.join(before + after).strip(' .,;:!?') or "Valor"

    def _amount_confidence(self, matched: str, context: CulturalContext) -> float:
        confidence = AMOUNT_BASE_CONFIDENCE
        if 'r$' in matched.lower():
            confidence += 0.1
        if ',' in matched:
            confidence += 0.1
        if context.scenario == Scenario.RESTAURANTE:
            confidence += 0.1
        return min(confidence, 1.0)

    def _build_amount(self, text: str, span, spans, value: float, confidence: float) -> Amount:
        start, end = span
        left, right = self._clause_bounds(text, span, spans)
        kind = self.amount_type(text, start, end, left, right)
        if kind == AmountType.DISCOUNT:
            value = -abs(value)
        return Amount(
            value=value,
            type=kind,
            description=self.amount_description(text, start, end, left, right),
            confidence=confidence,
        )

    def number_word_value(self, phrase: str) -> int:
        """'cento e vinte' -> 120, 'dois mil e quinhentos' -> 2500."""
        total = 0
        current = 0
        for token in self._number_word_token_re.findall(phrase):
            n = self.lexicon.number_words[token]
            if n == 1000:
                total += max(current, 1) * 1000
                current = 0
            else:
                current += n
        return total + current

    def extract_amounts(self, text: str, context: CulturalContext) -> List[Amount]:
        """
        Extract monetary amounts.

        Currency patterns, discount percentages and number words are all
        collected; the loose fallback runs only when they found nothing.
        Each amount is labelled from its own clause only.
        Result is de-duplicated by value and sorted descending.
        """
        candidates = []
        for pattern in CURRENCY_PATTERNS:
            for match in pattern.finditer(text):
                value = parse_value(match.group(1))
                if self._plausible(value):
                    candidates.append((match.span(), value, self._amount_confidence(match.group(0), context)))

        for match in self._number_words_re.finditer(text):
            value = float(self.number_word_value(match.group(1)))
            if self._plausible(value):
                candidates.append((match.span(), value, NUMBER_WORD_CONFIDENCE))

        spans = [span for span, _, _ in candidates]
        amounts: List[Amount] = [
            self._build_amount(text, span, spans, value, confidence)
            for span, value, confidence in candidates
        ]

        for pattern in DISCOUNT_PATTERNS:
            for match in pattern.finditer(text):
                value = parse_value(match.group(1))
                if value is not None and 0 < value <= 100:
                    amounts.append(Amount(
                        value=-value,
                        type=AmountType.DISCOUNT,
                        description=f"Desconto de {value:g}%",
                        confidence=DISCOUNT_CONFIDENCE,
                    ))

        if not amounts:
            for pattern in FALLBACK_PATTERNS:
                for match in pattern.finditer(text):
                    value = parse_value(match.group(1))
                    if self._plausible(value):
                        amounts.append(Amount(
                            value=value,
                            type=AmountType.TOTAL,
                            description="Detectado pelo contexto",
                            confidence=FALLBACK_CONFIDENCE,
                        ))

        return self.deduplicate_amounts(amounts)

    @staticmethod
    def deduplicate_amounts(amounts: List[Amount]) -> List[Amount]:
        """Keep the most confident amount per value, largest value first."""
        best: Dict[float, Amount] = {}
        for amount in amounts:
            current = best.get(amount.value)
            if current is None or amount.confidence > current.confidence:
                best[amount.value] = amount
        return sorted(best.values(), key=lambda a: a.value, reverse=True)

    @staticmethod
    def total_amount(amounts: List[Amount]) -> float:
        """Sum of TOTAL amounts; else the largest amount; else 0."""
        if not amounts:
            return 0.0
        totals = [a.value for a in amounts if a.type == AmountType.TOTAL]
        if totals:
            return float(sum(totals))
        return max(a.value for a in amounts)

    # ------------------------------------------------------------------
    # Splitting method, confidence, suggestions
    # ------------------------------------------------------------------

    def determine_splitting_method(self, text: str, context: CulturalContext) -> SplittingMethod:
        """Ordered keyword cascade, then the scenario default."""
        hit = first_match(text, self.lexicon.splitting_cascade)
        if hit:
            logger.debug(f"Splitting method '{hit[0]}' from keyword '{hit[1]}'")
            return SplittingMethod(hit[0])
        return self.lexicon.scenario_methods.get(context.scenario, SplittingMethod.EQUAL)

    def overall_confidence(
        self,
        context: CulturalContext,
        participants: List[Participant],
        amounts: List[Amount],
        variations: List[RegionalVariation],
    ) -> float:
        confidence = max(context.confidence, 0.6)

        if participants:
            mean = sum(p.confidence for p in participants) / len(participants)
            confidence = (confidence + mean) / 2
        else:
            confidence *= 0.9

        if amounts:
            mean = sum(a.confidence for a in amounts) / len(amounts)
            confidence = (confidence + mean) / 2
        else:
            confidence *= 0.8

        if variations:
            confidence += 0.15

        if context.confidence > 0.8:
            confidence += 0.1

        return max(0.0, min(confidence, 1.0))

    def suggestions(
        self,
        context: CulturalContext,
        participants: List[Participant],
        amounts: List[Amount],
        method: SplittingMethod,
    ) -> List[str]:
        suggestions = list(self.analyzer.suggestions(context))

        if not participants:
            suggestions.append("👥 Não consegui identificar os participantes. Pode especificar quem está dividindo?")

        if not amounts:
            suggestions.append("💰 Não consegui identificar o valor. Pode mencionar quanto custou?")

        suggestions.append(METHOD_CONFIRMATIONS[method])
        return suggestions


_default_processor: Optional[ExpenseNLPProcessor] = None


def _get_processor() -> ExpenseNLPProcessor:
    global _default_processor
    if _default_processor is None:
        _default_processor = ExpenseNLPProcessor()
    return _default_processor


def process_expense_text(text: str, region: Union[Region, str, None] = None) -> ExpenseInterpretation:
    """Interpret a message with the process-wide processor."""
    return _get_processor().process(text, region)
