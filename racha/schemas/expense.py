from enum import Enum
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any, Tuple


class Scenario(str, Enum):
    RODIZIO = "rodizio"
    HAPPY_HOUR = "happy_hour"
    CHURRASCO = "churrasco"
    ANIVERSARIO = "aniversario"
    VIAGEM = "viagem"
    VAQUINHA = "vaquinha"
    RESTAURANTE = "restaurante"
    UBER = "uber"
    OUTROS = "outros"


class GroupType(str, Enum):
    AMIGOS = "amigos"
    FAMILIA = "familia"
    TRABALHO = "trabalho"
    FACULDADE = "faculdade"
    CASAL = "casal"
    GRUPO_MISTO = "grupo_misto"


class Region(str, Enum):
    SAO_PAULO = "sao_paulo"
    RIO_DE_JANEIRO = "rio_de_janeiro"
    MINAS_GERAIS = "minas_gerais"
    BAHIA = "bahia"
    PERNAMBUCO = "pernambuco"
    PARANA = "parana"
    RIO_GRANDE_SUL = "rio_grande_sul"
    OUTROS = "outros"

    @property
    def display_name(self) -> str:
        return REGION_DISPLAY_NAMES[self]


class TimeOfDay(str, Enum):
    MANHA = "manha"
    ALMOCO = "almoco"
    TARDE = "tarde"
    JANTAR = "jantar"
    NOITE = "noite"
    MADRUGADA = "madrugada"


class FormalityLevel(str, Enum):
    MUITO_INFORMAL = "muito_informal"
    INFORMAL = "informal"
    FORMAL = "formal"
    PROFISSIONAL = "profissional"


class PaymentMethodHint(str, Enum):
    PIX = "pix"
    BOLETO = "boleto"
    CARTAO = "cartao"
    DINHEIRO = "dinheiro"
    VAQUINHA = "vaquinha"
    RODIZIO = "rodizio"


class SocialDynamics(str, Enum):
    IGUAL = "igual"
    POR_CONSUMO = "por_consumo"
    ANFITRIAO_PAGA = "anfitriao_paga"
    VAQUINHA = "vaquinha"
    POR_FAMILIA = "por_familia"
    COMPLEXO = "complexo"
    RODIZIO = "rodizio"


class SplittingMethod(str, Enum):
    EQUAL = "equal"
    BY_CONSUMPTION = "by_consumption"
    HOST_PAYS = "host_pays"
    VAQUINHA = "vaquinha"
    BY_FAMILY = "by_family"
    COMPLEX = "complex"


class ParticipantType(str, Enum):
    PERSON = "person"
    GROUP = "group"
    FAMILY = "family"
    COUPLE = "couple"


class AmountType(str, Enum):
    TOTAL = "total"
    PER_PERSON = "per_person"
    PER_GROUP = "per_group"
    DISCOUNT = "discount"
    TAX = "tax"
    TIP = "tip"


class ExpressionFormality(str, Enum):
    FORMAL = "formal"
    INFORMAL = "informal"
    SLANG = "slang"


REGION_DISPLAY_NAMES: Dict[Region, str] = {
    Region.SAO_PAULO: "São Paulo",
    Region.RIO_DE_JANEIRO: "Rio de Janeiro",
    Region.MINAS_GERAIS: "Minas Gerais",
    Region.BAHIA: "Bahia",
    Region.PERNAMBUCO: "Pernambuco",
    Region.PARANA: "Paraná",
    Region.RIO_GRANDE_SUL: "Rio Grande do Sul",
    Region.OUTROS: "Outros",
}

# State codes as they come from user profiles.
STATE_CODE_TO_REGION: Dict[str, Region] = {
    "SP": Region.SAO_PAULO,
    "RJ": Region.RIO_DE_JANEIRO,
    "MG": Region.MINAS_GERAIS,
    "BA": Region.BAHIA,
    "PE": Region.PERNAMBUCO,
    "PR": Region.PARANA,
    "RS": Region.RIO_GRANDE_SUL,
}

CURRENCY = "BRL"


def _enum_values(d: Dict[str, Any]) -> Dict[str, Any]:
    """Replace Enum members with their values and tuples with lists (one level deep)."""
    out = {}
    for k, v in d.items():
        if isinstance(v, Enum):
            v = v.value
        elif isinstance(v, tuple):
            v = list(v)
        out[k] = v
    return out


@dataclass(frozen=True)
class CulturalContext:
    """Social reading of a message. Every field has a default; low evidence shows up in confidence."""
    scenario: Scenario = Scenario.OUTROS
    group_type: GroupType = GroupType.GRUPO_MISTO
    region: Region = Region.OUTROS
    time_of_day: TimeOfDay = TimeOfDay.NOITE
    formality_level: FormalityLevel = FormalityLevel.INFORMAL
    payment_method_hint: PaymentMethodHint = PaymentMethodHint.PIX
    social_dynamics: SocialDynamics = SocialDynamics.IGUAL
    confidence: float = 0.0

    evidence: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable dict (Enum values become strings)."""
        d = _enum_values(asdict(self))
        d["confidence"] = round(self.confidence, 3)
        return d


@dataclass(frozen=True)
class Participant:
    name: str
    type: ParticipantType
    count: int = 1
    confidence: float = 0.0
    context: str = ""

    def to_dict(self) -> Dict[str, Any]:
        d = _enum_values(asdict(self))
        d["confidence"] = round(self.confidence, 3)
        return d


@dataclass(frozen=True)
class Amount:
    """
    A monetary value found in the text.

    A negative value is a discount; percentages from "desconto de 20%" are
    kept as -20 with type DISCOUNT.
    """
    value: float
    type: AmountType = AmountType.TOTAL
    description: str = "Valor"
    confidence: float = 0.0
    currency: str = CURRENCY

    def to_dict(self) -> Dict[str, Any]:
        d = _enum_values(asdict(self))
        d["value"] = round(self.value, 2)
        d["confidence"] = round(self.confidence, 3)
        return d


@dataclass(frozen=True)
class RegionalVariation:
    region: Region
    original_term: str
    standard_term: str
    confidence: float
    context: str = ""

    def to_dict(self) -> Dict[str, Any]:
        d = _enum_values(asdict(self))
        d["confidence"] = round(self.confidence, 3)
        return d


@dataclass(frozen=True)
class ExpenseInterpretation:
    """
    Final output of the expense pipeline.

    - participants / amounts: extraction results, already de-duplicated
    - total_amount: sum of TOTAL amounts, else the largest amount, else 0
    - suggestions: advisory strings for the UI, not used downstream
    """
    original_text: str
    normalized_text: str
    participants: Tuple[Participant, ...]
    amounts: Tuple[Amount, ...]
    total_amount: float
    splitting_method: SplittingMethod
    cultural_context: CulturalContext
    confidence: float
    suggestions: Tuple[str, ...] = ()
    regional_variations: Tuple[RegionalVariation, ...] = ()
    processing_time_ms: float = 0.0
    currency: str = CURRENCY

    @property
    def participant_count(self) -> int:
        """Number of people implied by the participants (sum of counts)."""
        return sum(p.count for p in self.participants)

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable dict (Enum values become strings)."""
        return {
            "original_text": self.original_text,
            "normalized_text": self.normalized_text,
            "participants": [p.to_dict() for p in self.participants],
            "amounts": [a.to_dict() for a in self.amounts],
            "currency": self.currency,
            "total_amount": round(self.total_amount, 2),
            "splitting_method": self.splitting_method.value,
            "cultural_context": self.cultural_context.to_dict(),
            "confidence": round(self.confidence, 3),
            "suggestions": list(self.suggestions),
            "regional_variations": [v.to_dict() for v in self.regional_variations],
            "processing_time_ms": round(self.processing_time_ms, 3),
        }


@dataclass(frozen=True)
class RegionalContext:
    region: Region
    formality_level: ExpressionFormality
    common_expressions: Tuple[str, ...]
    cultural_notes: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return _enum_values(asdict(self))


@dataclass(frozen=True)
class ExpenseCategorization:
    category: str
    confidence: float
    keywords: Tuple[str, ...] = ()
    cultural_factors: Tuple[str, ...] = ()
    regional_variations: Tuple[RegionalVariation, ...] = ()
    reason: str = ""
    region: Optional[Region] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "confidence": round(self.confidence, 3),
            "keywords": list(self.keywords),
            "cultural_factors": list(self.cultural_factors),
            "regional_variations": [v.to_dict() for v in self.regional_variations],
            "reason": self.reason,
            "region": self.region.value if self.region else None,
        }
