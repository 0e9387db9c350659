"""
Tests for the expense NLP processor: participants, amounts, splitting method,
confidence aggregation and suggestions.
"""

import dataclasses

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from racha.config.engine_config import EngineConfig
from racha.pipelines.expense_nlp import ExpenseNLPProcessor, parse_value, process_expense_text
from racha.pipelines.lang.loader import get_default_pack
from racha.schemas.expense import (
    Amount,
    AmountType,
    CulturalContext,
    ExpenseInterpretation,
    ParticipantType,
    Region,
    Scenario,
    SplittingMethod,
)


@pytest.fixture(scope="module")
def processor():
    return ExpenseNLPProcessor(get_default_pack(), EngineConfig())


def _amounts(processor, text, scenario=Scenario.OUTROS):
    normalized = processor.normalizer.normalize_text(text)
    return processor.extract_amounts(normalized, CulturalContext(scenario=scenario))


def _participants(processor, text):
    return processor.extract_participants(processor.normalizer.normalize_text(text))


class TestParseValue:

    @pytest.mark.parametrize("raw,expected", [
        ("99,90", 99.90),
        ("120,00", 120.0),
        ("1.250,00", 1250.0),
        ("1.250", 1250.0),
        ("12.50", 12.5),
        ("300", 300.0),
    ])
    def test_brazilian_formats(self, raw, expected):
        assert parse_value(raw) == pytest.approx(expected)

    def test_garbage(self):
        assert parse_value("abc") is None


class TestParticipants:

    def test_three_individuals_are_exhaustive(self, processor):
        participants = _participants(processor, "Eu, você e ele vamos dividir a conta.")
        assert [p.name for p in participants] == ["Eu", "Você", "Ele"]
        assert all(p.type == ParticipantType.PERSON for p in participants)

    def test_individual_plus_group(self, processor):
        participants = _participants(processor, "Eu e a galera")
        assert [(p.name, p.type) for p in participants] == [
            ("Eu", ParticipantType.PERSON),
            ("Galera", ParticipantType.GROUP),
        ]

    def test_canonical_names_dedupe(self, processor):
        participants = _participants(processor, "Você e vc e tu")
        assert [p.name for p in participants] == ["Você"]

    def test_group_pronoun(self, processor):
        participants = _participants(processor, "Nós pagamos")
        assert participants[0].name == "Nós"
        assert participants[0].type == ParticipantType.GROUP
        assert participants[0].confidence == pytest.approx(0.9)

    def test_family_and_couple_types(self, processor):
        participants = _participants(processor, "A família, os primos e o casal")
        types = {p.name: p.type for p in participants}
        assert types["Família"] == ParticipantType.FAMILY
        assert types["Primos"] == ParticipantType.FAMILY
        assert types["Casal"] == ParticipantType.COUPLE

    def test_numeric_group(self, processor):
        participants = _participants(processor, "Pizza para 4 pessoas")
        assert len(participants) == 1
        assert participants[0].name == "4 pessoas"
        assert participants[0].count == 4
        assert participants[0].type == ParticipantType.GROUP

    def test_numeric_families(self, processor):
        participants = _participants(processor, "Churrasco com 3 famílias")
        numeric = [p for p in participants if p.count == 3]
        assert numeric and numeric[0].type == ParticipantType.FAMILY

    def test_implausible_count_discarded(self, processor):
        assert _participants(processor, "Jantar para 25 pessoas") == []
        assert _participants(processor, "Jantar para 0 pessoas") == []

    def test_split_verb_implies_group(self, processor):
        participants = _participants(processor, "Vamos rachar?")
        assert len(participants) == 1
        assert participants[0].name == "Grupo"
        assert participants[0].confidence == pytest.approx(0.5)

    def test_nobody(self, processor):
        assert _participants(processor, "Pizza de calabresa") == []

    def test_pronouns_need_whole_words(self, processor):
        # "ele" inside "elefante", "eu" inside "seu"
        assert _participants(processor, "O seu elefante") == []


class TestAmounts:

    def test_comma_decimal(self, processor):
        amounts = _amounts(processor, "R$ 99,90")
        assert [a.value for a in amounts] == [pytest.approx(99.90)]
        assert amounts[0].type == AmountType.TOTAL

    def test_thousands_separator(self, processor):
        assert [a.value for a in _amounts(processor, "Hotel de R$ 1.250,00")] == [1250.0]

    def test_reais_suffix_and_slang_units(self, processor):
        assert [a.value for a in _amounts(processor, "200 reais")] == [200.0]
        assert [a.value for a in _amounts(processor, "deu 50 pila")] == [50.0]
        assert [a.value for a in _amounts(processor, "uns 30 conto")] == [30.0]

    def test_confidence(self, processor):
        assert _amounts(processor, "R$ 99,90")[0].confidence == pytest.approx(1.0)
        assert _amounts(processor, "200 reais")[0].confidence == pytest.approx(0.8)
        restaurant = _amounts(processor, "200 reais", scenario=Scenario.RESTAURANTE)
        assert restaurant[0].confidence == pytest.approx(0.9)

    def test_same_value_reported_once(self, processor):
        amounts = _amounts(processor, "R$ 50 ou 50 reais")
        assert len(amounts) == 1
        assert amounts[0].confidence == pytest.approx(0.9)

    def test_sorted_descending(self, processor):
        amounts = _amounts(processor, "R$ 20 de entrada e R$ 180 de comida")
        assert [a.value for a in amounts] == [180.0, 20.0]

    def test_out_of_range_discarded(self, processor):
        assert _amounts(processor, "Carro de R$ 15.000,00") == []

    def test_max_amount_from_config(self):
        small = ExpenseNLPProcessor(get_default_pack(), EngineConfig(max_amount=100.0))
        assert _amounts(small, "R$ 150,00 e R$ 80,00")[0].value == 80.0

    def test_discount_percentage_is_negative(self, processor):
        amounts = _amounts(processor, "Conta de R$ 100,00 no bar, com desconto de 20%")
        by_type = {a.type: a for a in amounts}
        assert by_type[AmountType.DISCOUNT].value == -20.0
        assert by_type[AmountType.DISCOUNT].description == "Desconto de 20%"
        assert by_type[AmountType.TOTAL].value == 100.0

    def test_number_words(self, processor):
        assert [a.value for a in _amounts(processor, "cem reais")] == [100.0]
        assert [a.value for a in _amounts(processor, "foram cento e vinte reais")] == [120.0]
        assert [a.value for a in _amounts(processor, "dois mil e quinhentos reais")] == [2500.0]

    def test_number_word_value(self, processor):
        assert processor.number_word_value("trezentos e cinquenta") == 350
        assert processor.number_word_value("mil") == 1000

    def test_loose_fallback(self, processor):
        amounts = _amounts(processor, "pedido12 reais")
        assert [a.value for a in amounts] == [12.0]
        assert amounts[0].confidence == pytest.approx(0.6)
        assert amounts[0].description == "Detectado pelo contexto"

    def test_no_amounts(self, processor):
        assert _amounts(processor, "Rodízio de pizza. Cada um paga uma rodada.") == []

    @pytest.mark.parametrize("text,expected", [
        ("R$ 50 por pessoa", AmountType.PER_PERSON),
        ("R$ 80 por família", AmountType.PER_GROUP),
        ("Taxa de serviço R$ 12,00", AmountType.TAX),
        ("Gorjeta de R$ 10", AmountType.TIP),
        ("Desconto de R$ 15", AmountType.DISCOUNT),
        ("R$ 250,00, cada um paga o seu", AmountType.TOTAL),
    ])
    def test_amount_type_from_surrounding_words(self, processor, text, expected):
        amounts = _amounts(processor, text)
        assert amounts[0].type == expected

    def test_discount_amount_is_negative(self, processor):
        assert _amounts(processor, "Desconto de R$ 15")[0].value == -15.0

    def test_label_does_not_cross_clause_break(self, processor):
        amounts = _amounts(processor, "Jantar de R$ 100,00, desconto de R$ 10,00.")
        assert [(a.value, a.type) for a in amounts] == [
            (100.0, AmountType.TOTAL),
            (-10.0, AmountType.DISCOUNT),
        ]
        assert ExpenseNLPProcessor.total_amount(amounts) == 100.0

    def test_label_of_next_amount_is_not_borrowed(self, processor):
        amounts = _amounts(processor, "Conta de R$ 100,00 e gorjeta de R$ 10,00")
        assert [(a.value, a.type) for a in amounts] == [
            (100.0, AmountType.TOTAL),
            (10.0, AmountType.TIP),
        ]

    @pytest.mark.parametrize("text,expected", [
        ("R$ 10 de desconto", AmountType.DISCOUNT),
        ("R$ 5 de gorjeta", AmountType.TIP),
        ("R$ 100 com desconto", AmountType.TOTAL),
        ("R$ 100 sem gorjeta", AmountType.TOTAL),
    ])
    def test_trailing_label_must_be_attached(self, processor, text, expected):
        assert _amounts(processor, text)[0].type == expected


class TestTotalAmount:

    def test_sums_totals_only(self):
        amounts = [
            Amount(100.0, AmountType.TOTAL),
            Amount(50.0, AmountType.TOTAL),
            Amount(15.0, AmountType.TIP),
            Amount(-20.0, AmountType.DISCOUNT),
        ]
        assert ExpenseNLPProcessor.total_amount(amounts) == 150.0

    def test_largest_when_no_total(self):
        amounts = [Amount(30.0, AmountType.PER_PERSON), Amount(10.0, AmountType.TIP)]
        assert ExpenseNLPProcessor.total_amount(amounts) == 30.0

    def test_empty(self):
        assert ExpenseNLPProcessor.total_amount([]) == 0.0


class TestSplittingMethod:

    @pytest.mark.parametrize("text,expected", [
        ("Vamos fazer uma vaquinha", SplittingMethod.VAQUINHA),
        ("Eu pago agora", SplittingMethod.HOST_PAYS),
        ("O anfitrião paga tudo", SplittingMethod.HOST_PAYS),
        ("Eu pago e depois acertamos", SplittingMethod.HOST_PAYS),
        ("Cada um paga diferente", SplittingMethod.COMPLEX),
        ("Cada um paga o que bebeu", SplittingMethod.BY_CONSUMPTION),
        ("Dividimos por família", SplittingMethod.BY_FAMILY),
        ("Divide igual", SplittingMethod.EQUAL),
    ])
    def test_cascade(self, processor, text, expected):
        normalized = processor.normalizer.normalize_text(text)
        assert processor.determine_splitting_method(normalized, CulturalContext()) == expected

    def test_host_pays_suppressed_by_cada_um_paga(self, processor):
        text = processor.normalizer.normalize_text("Eu pago agora, mas cada um paga igual")
        assert processor.determine_splitting_method(text, CulturalContext()) == SplittingMethod.EQUAL

    @pytest.mark.parametrize("scenario,expected", [
        (Scenario.RODIZIO, SplittingMethod.EQUAL),
        (Scenario.HAPPY_HOUR, SplittingMethod.BY_CONSUMPTION),
        (Scenario.ANIVERSARIO, SplittingMethod.HOST_PAYS),
        (Scenario.VAQUINHA, SplittingMethod.VAQUINHA),
        (Scenario.CHURRASCO, SplittingMethod.BY_FAMILY),
        (Scenario.UBER, SplittingMethod.EQUAL),
        (Scenario.OUTROS, SplittingMethod.EQUAL),
    ])
    def test_scenario_defaults(self, processor, scenario, expected):
        method = processor.determine_splitting_method("sem pistas", CulturalContext(scenario=scenario))
        assert method == expected


class TestProcess:

    def test_full_interpretation(self, processor):
        result = processor.process("Churrasco com a galera, 300 pila, vamos rascar", region="RS")

        assert isinstance(result, ExpenseInterpretation)
        assert result.cultural_context.scenario == Scenario.CHURRASCO
        assert result.cultural_context.region == Region.RIO_GRANDE_SUL
        assert result.total_amount == 300.0
        assert result.currency == "BRL"
        assert {v.original_term for v in result.regional_variations} >= {"galera", "rascar", "pila"}
        assert all(v.region == Region.RIO_GRANDE_SUL for v in result.regional_variations)
        assert result.normalized_text == "churrasco com a galera, 300 pila, vamos rascar"
        assert result.processing_time_ms >= 0.0

    def test_detected_region_feeds_regional_scan(self, processor):
        result = processor.process("Sou carioca, vamos rascar")
        assert result.cultural_context.region == Region.RIO_DE_JANEIRO
        assert result.regional_variations[0].region == Region.RIO_DE_JANEIRO

    def test_participant_count(self, processor):
        result = processor.process("Jantar para 4 pessoas, R$ 200")
        assert result.participant_count == 4

    def test_suggestions_for_missing_data(self, processor):
        result = processor.process("Bom dia")
        assert "👥 Não consegui identificar os participantes. Pode especificar quem está dividindo?" in result.suggestions
        assert "💰 Não consegui identificar o valor. Pode mencionar quanto custou?" in result.suggestions
        assert result.suggestions[-1] == "✅ Vou dividir igualmente entre todos"

    def test_method_confirmation(self, processor):
        result = processor.process("Vaquinha de 100 reais com a galera")
        assert result.splitting_method == SplittingMethod.VAQUINHA
        assert result.suggestions[-1] == "💰 Vou fazer uma vaquinha entre todos"

    def test_confidence_penalized_without_data(self, processor):
        empty = processor.process("Bom dia")
        full = processor.process("Rodízio de pizza. R$ 120,00 para 4 pessoas. Cada um paga igual.")
        assert 0.0 <= empty.confidence < full.confidence <= 1.0

    def test_overall_confidence_formula(self, processor):
        context = CulturalContext(confidence=0.5)
        # max(0.5, 0.6) * 0.9 * 0.8
        assert processor.overall_confidence(context, [], [], []) == pytest.approx(0.432)

    def test_deterministic(self, processor):
        text = "Happy hour com os colegas. Conta de R$ 250,00, cada um paga o que consumiu."
        first = processor.process(text).to_dict()
        second = processor.process(text).to_dict()
        first.pop("processing_time_ms")
        second.pop("processing_time_ms")
        assert first == second

    @pytest.mark.parametrize("text", [
        "", " ", "???", "0", "R$", "R$ 0,00", "99999999 reais", "🍕" * 50,
        "a" * 2000, "desconto de 500%", "mil mil mil reais",
    ])
    def test_total_over_strings(self, processor, text):
        result = processor.process(text)
        assert 0.0 <= result.confidence <= 1.0
        assert isinstance(result.to_dict(), dict)

    def test_none_is_empty(self, processor):
        result = processor.process(None)
        assert result.original_text == ""
        assert result.amounts == ()

    def test_non_string_rejected(self, processor):
        with pytest.raises(TypeError):
            processor.process(3.14)

    def test_to_dict(self, processor):
        d = processor.process("R$ 99,90 por pessoa").to_dict()
        assert d["amounts"][0] == {
            "value": 99.9,
            "type": "per_person",
            "description": "por pessoa",
            "confidence": 1.0,
            "currency": "BRL",
        }
        assert d["splitting_method"] == "equal"

    def test_result_is_immutable(self, processor):
        result = processor.process("Rodízio com a galera. R$ 120,00 para 4 pessoas.", region="SP")
        for seq in (result.participants, result.amounts, result.suggestions,
                    result.regional_variations, result.cultural_context.evidence):
            assert isinstance(seq, tuple)
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.amounts = ()
        assert isinstance(result.to_dict()["cultural_context"]["evidence"], list)


def test_module_level_entry_point():
    result = process_expense_text("Vamos fazer uma vaquinha de 200 reais para o presente.")
    assert result.splitting_method == SplittingMethod.VAQUINHA
    assert result.total_amount == 200.0
