"""
Tests for regional variation detection and standardization.
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from racha.pipelines.lang.loader import get_default_pack
from racha.pipelines.regional_variations import RegionalVariationProcessor
from racha.schemas.expense import ExpressionFormality, Region


@pytest.fixture(scope="module")
def processor():
    return RegionalVariationProcessor(get_default_pack())


class TestDetect:

    def test_declared_region_is_scanned_first(self, processor):
        variations = processor.detect("Vamos rascar a conta, tchê", region="RS")
        by_term = {v.original_term: v for v in variations}

        assert set(by_term) == {"rascar", "tche"}
        assert all(v.region == Region.RIO_GRANDE_SUL for v in variations)
        assert by_term["rascar"].standard_term == "dividir"
        assert by_term["tche"].standard_term == "cara"

    def test_confidence_adjustments(self, processor):
        by_term = {v.original_term: v for v in processor.detect("rascar tchê molecada", region="RS")}

        # declared +0.2, common +0.1, listed in 8 regions -0.1
        assert by_term["rascar"].confidence == pytest.approx(0.9)
        # declared +0.2
        assert by_term["tche"].confidence == pytest.approx(0.9)
        # found in another region's dictionary
        assert by_term["molecada"].region == Region.RIO_DE_JANEIRO
        assert by_term["molecada"].confidence == pytest.approx(0.7)

    def test_without_declared_region(self, processor):
        variations = processor.detect("Com a molecada")
        assert len(variations) == 1
        assert variations[0].region == Region.RIO_DE_JANEIRO
        assert variations[0].standard_term == "pessoal"

    def test_shared_terms_reported_once(self, processor):
        variations = processor.detect("Sem grana nenhuma")
        assert [v.original_term for v in variations] == ["grana"]
        assert processor.is_shared("grana")
        assert not processor.is_shared("tche")

    def test_substring_semantics(self, processor):
        # "guri" is found inside "gurizada"
        terms = [v.original_term for v in processor.detect("Churrasco com a gurizada", region="PR")]
        assert "guri" in terms

    def test_accents_are_ignored(self, processor):
        assert [v.original_term for v in processor.detect("Bah TCHÊ")] == ["tche"]

    def test_nothing_found(self, processor):
        assert processor.detect("Jantar com os colegas") == []
        assert processor.detect("") == []
        assert processor.detect(None) == []

    def test_unknown_region_falls_back_to_full_scan(self, processor):
        variations = processor.detect("Com a meninada", region="narnia")
        assert variations[0].region == Region.BAHIA


class TestStandardize:

    def test_replaces_terms(self, processor):
        assert processor.standardize("Vamos rascar com a galera") == "vamos dividir com a pessoal"

    def test_multi_word_term(self, processor):
        assert processor.standardize("Hoje vou pagar a vez", region="RJ") == "hoje vou pagar rodada"

    def test_single_pass(self, processor):
        # "pagar rodada" is itself a term; the output is not rescanned
        result = processor.standardize("pagar a rodada e pagar rodada", region="MG")
        assert result == "pagar rodada e pagar rodada"

    def test_whole_word_substitution(self, processor):
        # detected as a substring, but only whole words are rewritten
        assert processor.standardize("A gurizada chegou", region="RS") == "a gurizada chegou"

    def test_no_terms_returns_normalized_text(self, processor):
        assert processor.standardize("  Jantar   ÀS 8 ") == "jantar as 8"


class TestRegionalContext:

    @pytest.mark.parametrize("region,expected", [
        (Region.RIO_GRANDE_SUL, ExpressionFormality.SLANG),
        (Region.SAO_PAULO, ExpressionFormality.SLANG),
        (Region.RIO_DE_JANEIRO, ExpressionFormality.INFORMAL),
    ])
    def test_dominant_formality(self, processor, region, expected):
        assert processor.regional_context(region).formality_level == expected

    def test_expressions_and_notes(self, processor):
        context = processor.regional_context("RS")
        assert context.region == Region.RIO_GRANDE_SUL
        assert "tche" in context.common_expressions
        assert isinstance(context.common_expressions, tuple)
        assert isinstance(context.cultural_notes, tuple) and context.cultural_notes

    def test_unknown_region_uses_outros(self, processor):
        context = processor.regional_context("narnia")
        assert context.region == Region.OUTROS
        assert context.cultural_notes

    def test_to_dict(self, processor):
        d = processor.regional_context(Region.BAHIA).to_dict()
        assert d["region"] == "bahia"
        assert d["formality_level"] in ("formal", "informal", "slang")
        assert isinstance(d["common_expressions"], list)


class TestLookups:

    def test_all_regions(self, processor):
        assert set(processor.all_regions()) == set(Region)

    def test_expressions(self, processor):
        terms = [e.term for e in processor.expressions("sao_paulo")]
        assert terms == ["pila", "grana", "galera", "rascar", "rodizio"]
        assert processor.expressions("narnia") == []

    def test_search_term_and_meaning(self, processor):
        results = processor.search("rodada")
        assert results
        for region, expression in results:
            assert isinstance(region, Region)
            assert "rodada" in expression.term or "rodada" in expression.meaning.lower()
        regions = {region for region, _ in results}
        # "pagar a vez" only mentions a rodada in its meaning
        assert Region.RIO_DE_JANEIRO in regions

    def test_search_empty(self, processor):
        assert processor.search("") == []

    def test_suggestions(self, processor):
        variations = processor.detect("tchê", region="RS")
        lines = processor.suggestions(variations)
        assert lines == ['📍 Rio Grande do Sul: "tche" = "cara" (Vocativo gaúcho, companheiro)']
