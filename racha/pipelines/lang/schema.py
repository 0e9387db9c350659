"""
Pydantic schema for the keyword packs.

Ensures packs are well-formed and fail fast on configuration errors.
Keyword fields are normalized on load, so the YAML can keep accents.
"""

import re
from typing import Annotated, Dict, Optional, Tuple

from pydantic import AfterValidator, BaseModel, Field, field_validator, model_validator

from racha.schemas.expense import (
    AmountType,
    ExpressionFormality,
    FormalityLevel,
    GroupType,
    PaymentMethodHint,
    Region,
    Scenario,
    SocialDynamics,
    SplittingMethod,
    TimeOfDay,
)
from .normalizer import TextNormalizer


_normalizer = TextNormalizer()

FROZEN = {
    "extra": 'forbid',  # Prevent unknown fields
    "frozen": True,
}


def _keyword_tuple(v) -> Tuple[str, ...]:
    """Coerce a YAML scalar/list into a tuple of normalized, unique keywords."""
    if v is None:
        return ()
    if isinstance(v, str):
        v = [v]
    if not isinstance(v, (list, tuple)):
        raise ValueError("Keywords must be strings or lists of strings")
    return tuple(_normalizer.normalize_keywords(str(item) for item in v))


def _validate_version(v: str) -> str:
    if not re.match(r'^\d+\.\d+\.\d+$', v):
        raise ValueError(f"Invalid version '{v}'. Expected semantic version: '1.0.0'")
    return v


Version = Annotated[str, AfterValidator(_validate_version)]


class KeywordRule(BaseModel):
    """
    One step of an ordered cascade: if any keyword occurs, yield ``result``.

    ``unless`` lists phrases whose presence suppresses the rule.
    """
    result: str = Field(..., description="Value produced when the rule fires")
    keywords: Tuple[str, ...] = Field(..., description="Trigger phrases (substring match)")
    unless: Tuple[str, ...] = Field(default=(), description="Phrases that suppress this rule")

    @field_validator('keywords', 'unless', mode='before')
    @classmethod
    def normalize_keywords(cls, v):
        return _keyword_tuple(v)

    @field_validator('keywords')
    @classmethod
    def keywords_not_empty(cls, v):
        if not v:
            raise ValueError("A keyword rule needs at least one keyword")
        return v

    model_config = FROZEN


def _check_cascade(name: str, rules: Tuple[KeywordRule, ...], enum_cls) -> None:
    valid = {m.value for m in enum_cls}
    for rule in rules:
        if rule.result not in valid:
            raise ValueError(f"Cascade '{name}' has unknown result '{rule.result}'; valid: {sorted(valid)}")


# ---------------------------------------------------------------------------
# cultural_patterns.yaml
# ---------------------------------------------------------------------------

class CulturalPattern(BaseModel):
    """A social scenario signature: keywords plus the conventions it implies."""
    keywords: Tuple[str, ...]
    scenarios: Tuple[Scenario, ...] = Field(..., min_length=1, description="Ranked candidate scenarios")
    group_types: Tuple[GroupType, ...] = ()
    social_dynamics: Tuple[SocialDynamics, ...] = Field(..., min_length=1, description="Ranked candidate dynamics")
    regional_variations: Dict[Region, Tuple[str, ...]] = Field(default_factory=dict)
    formality_levels: Tuple[FormalityLevel, ...] = ()
    confidence: float = Field(..., ge=0.0, le=1.0, description="Base confidence of the pattern")

    @field_validator('keywords', mode='before')
    @classmethod
    def normalize_keywords(cls, v):
        return _keyword_tuple(v)

    @field_validator('keywords')
    @classmethod
    def keywords_not_empty(cls, v):
        if not v:
            raise ValueError("Pattern keywords cannot be empty")
        return v

    @field_validator('regional_variations', mode='before')
    @classmethod
    def normalize_variations(cls, v):
        if v is None:
            return {}
        return {region: _keyword_tuple(terms) for region, terms in v.items()}

    model_config = FROZEN


class FormalityLexicon(BaseModel):
    """Term lists and weights for the formality score."""
    formal: Tuple[str, ...] = ()
    informal: Tuple[str, ...] = ()
    very_informal: Tuple[str, ...] = ()
    formal_weight: float = 1.0
    informal_weight: float = -0.3
    very_informal_weight: float = -2.0
    regional_weight: float = 0.5
    profissional_threshold: float = 3.0
    formal_threshold: float = 1.0
    informal_threshold: float = -1.5

    @field_validator('formal', 'informal', 'very_informal', mode='before')
    @classmethod
    def normalize_keywords(cls, v):
        return _keyword_tuple(v)

    @model_validator(mode='after')
    def thresholds_descending(self):
        if not (self.profissional_threshold > self.formal_threshold > self.informal_threshold):
            raise ValueError("Formality thresholds must be strictly descending")
        return self

    model_config = FROZEN


class RegionalRegister(BaseModel):
    """Region-specific formal/informal vocabulary used to nudge formality."""
    formal: Tuple[str, ...] = ()
    informal: Tuple[str, ...] = ()
    slang: Tuple[str, ...] = ()

    @field_validator('*', mode='before')
    @classmethod
    def normalize_keywords(cls, v):
        return _keyword_tuple(v)

    model_config = FROZEN


class CulturalPatternPack(BaseModel):
    """Tables used by the cultural context analyzer."""
    id: str = Field(..., description="Pack ID")
    version: Version = Field(..., description="Semantic version (e.g., '1.0.0')")
    name: str = Field(..., description="Human-readable pack name")

    patterns: Dict[str, CulturalPattern]
    slang: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    formality: FormalityLexicon = Field(default_factory=FormalityLexicon)
    regional_register: Dict[Region, RegionalRegister] = Field(default_factory=dict)

    # Ordered cascades, first match wins
    region_terms: Tuple[KeywordRule, ...] = ()
    time_of_day: Tuple[KeywordRule, ...] = ()
    group_types: Tuple[KeywordRule, ...] = ()
    scenario_fallback: Tuple[KeywordRule, ...] = ()
    payment_methods: Tuple[KeywordRule, ...] = ()
    social_dynamics: Tuple[KeywordRule, ...] = ()

    @field_validator('slang', mode='before')
    @classmethod
    def normalize_slang(cls, v):
        if v is None:
            return {}
        return {category: _keyword_tuple(terms) for category, terms in v.items()}

    @model_validator(mode='after')
    def validate_cascades(self):
        if not self.patterns:
            raise ValueError("Pattern database cannot be empty")
        _check_cascade('region_terms', self.region_terms, Region)
        _check_cascade('time_of_day', self.time_of_day, TimeOfDay)
        _check_cascade('group_types', self.group_types, GroupType)
        _check_cascade('scenario_fallback', self.scenario_fallback, Scenario)
        _check_cascade('payment_methods', self.payment_methods, PaymentMethodHint)
        _check_cascade('social_dynamics', self.social_dynamics, SocialDynamics)
        return self

    model_config = FROZEN


# ---------------------------------------------------------------------------
# regional_expressions.yaml
# ---------------------------------------------------------------------------

class RegionalExpression(BaseModel):
    """A regional term and its standard Portuguese equivalent."""
    term: str
    standard_term: str
    meaning: str
    formality: ExpressionFormality
    usage: str = ""
    examples: Tuple[str, ...] = ()

    @field_validator('term', 'standard_term')
    @classmethod
    def normalize_term(cls, v):
        v = _normalizer.normalize_text(v)
        if not v:
            raise ValueError("Terms cannot be empty")
        return v

    model_config = FROZEN


class RegionalExpressionPack(BaseModel):
    """Per-region slang dictionaries."""
    id: str
    version: Version
    name: str
    common_terms: Tuple[str, ...] = Field(default=(), description="Terms that earn a confidence bonus")
    shared_term_limit: int = Field(default=3, ge=1, description="Above this many regions a term is not distinctive")
    regions: Dict[Region, Tuple[RegionalExpression, ...]]
    cultural_notes: Dict[Region, Tuple[str, ...]] = Field(default_factory=dict)

    @field_validator('common_terms', mode='before')
    @classmethod
    def normalize_keywords(cls, v):
        return _keyword_tuple(v)

    @model_validator(mode='after')
    def validate_regions(self):
        missing = [r.value for r in Region if r not in self.regions]
        if missing:
            raise ValueError(f"Regional dictionaries missing for: {missing}")
        for region, expressions in self.regions.items():
            terms = [e.term for e in expressions]
            if len(terms) != len(set(terms)):
                raise ValueError(f"Duplicate terms in region '{region.value}'")
        return self

    model_config = FROZEN


# ---------------------------------------------------------------------------
# expense_lexicon.yaml
# ---------------------------------------------------------------------------

class ParticipantLexicon(BaseModel):
    """Words that name who is splitting."""
    individual_pronouns: Tuple[str, ...]
    group_pronouns: Tuple[str, ...] = ()
    group_nouns: Tuple[str, ...] = ()
    family_nouns: Tuple[str, ...] = ()
    couple_nouns: Tuple[str, ...] = ()
    numeric_nouns: Tuple[str, ...] = ()
    split_verbs: Tuple[str, ...] = ()
    canonical_names: Dict[str, str] = Field(default_factory=dict, description="normalized word -> display name")

    @field_validator(
        'individual_pronouns', 'group_pronouns', 'group_nouns', 'family_nouns',
        'couple_nouns', 'numeric_nouns', 'split_verbs', mode='before',
    )
    @classmethod
    def normalize_keywords(cls, v):
        return _keyword_tuple(v)

    @field_validator('canonical_names', mode='before')
    @classmethod
    def normalize_name_keys(cls, v):
        if v is None:
            return {}
        return {_normalizer.normalize_text(k): str(name) for k, name in v.items()}

    model_config = FROZEN


class CategoryRule(BaseModel):
    """Expense category signature for ``categorize_expense``."""
    category: str
    keywords: Tuple[str, ...]
    reason: str
    typical_amount: Optional[Tuple[float, float]] = Field(
        default=None, description="Open interval of amounts typical for the category"
    )

    @field_validator('keywords', mode='before')
    @classmethod
    def normalize_keywords(cls, v):
        return _keyword_tuple(v)

    model_config = FROZEN


class ExpenseLexicon(BaseModel):
    """Tables used by the expense processor and categorizer."""
    id: str
    version: Version
    name: str

    participants: ParticipantLexicon
    number_words: Dict[str, int] = Field(default_factory=dict)
    splitting_cascade: Tuple[KeywordRule, ...]
    scenario_methods: Dict[Scenario, SplittingMethod] = Field(default_factory=dict)
    amount_types: Tuple[KeywordRule, ...] = ()
    categories: Tuple[CategoryRule, ...] = ()
    default_category_reason: str = "Despesa geral"
    cultural_factors: Tuple[KeywordRule, ...] = ()
    regional_factors: Dict[Region, str] = Field(default_factory=dict)

    @field_validator('number_words', mode='before')
    @classmethod
    def normalize_number_words(cls, v):
        if v is None:
            return {}
        return {_normalizer.normalize_text(k): int(n) for k, n in v.items()}

    @model_validator(mode='after')
    def validate_cascades(self):
        _check_cascade('splitting_cascade', self.splitting_cascade, SplittingMethod)
        _check_cascade('amount_types', self.amount_types, AmountType)
        return self

    model_config = FROZEN
