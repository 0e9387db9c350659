"""
Rule-based interpretation of Brazilian Portuguese shared-expense messages.

    from racha import process_expense_text
    result = process_expense_text("Rodízio de pizza. R$ 120,00 para 4 pessoas.")
"""

from racha.schemas.expense import (
    Amount,
    AmountType,
    CulturalContext,
    ExpenseCategorization,
    ExpenseInterpretation,
    FormalityLevel,
    GroupType,
    Participant,
    ParticipantType,
    PaymentMethodHint,
    Region,
    RegionalContext,
    RegionalVariation,
    Scenario,
    SocialDynamics,
    SplittingMethod,
    TimeOfDay,
)
from racha.pipelines.cultural_context import CulturalContextAnalyzer, analyze_cultural_context
from racha.pipelines.regional_variations import RegionalVariationProcessor
from racha.pipelines.expense_nlp import ExpenseNLPProcessor, process_expense_text
from racha.pipelines.categorizer import ExpenseCategorizer, categorize_expense

__version__ = "1.1.0"

__all__ = [
    "analyze_cultural_context",
    "process_expense_text",
    "categorize_expense",
    "CulturalContextAnalyzer",
    "RegionalVariationProcessor",
    "ExpenseNLPProcessor",
    "ExpenseCategorizer",
    "Amount",
    "AmountType",
    "CulturalContext",
    "ExpenseCategorization",
    "ExpenseInterpretation",
    "FormalityLevel",
    "GroupType",
    "Participant",
    "ParticipantType",
    "PaymentMethodHint",
    "Region",
    "RegionalContext",
    "RegionalVariation",
    "Scenario",
    "SocialDynamics",
    "SplittingMethod",
    "TimeOfDay",
]
