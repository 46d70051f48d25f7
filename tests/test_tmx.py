import pytest

from lingoshield.exceptions import MalformedInputError
from lingoshield.tmx import TmxMatcher, TmxMemory, export_memory, export_tmx, get_tmx_statistics, parse_tmx
from lingoshield.tmx.matcher import normalize_for_matching, similarity
from lingoshield.tmx.models import MATCH_EXACT, MATCH_FUZZY, MATCH_PARTIAL


def test_parse_tmx_reads_units_and_metadata(sample_memory):
    assert sample_memory.name == "sample.tmx"
    assert sample_memory.source_lang == "en-US"
    assert sample_memory.target_langs == ["fr-FR", "de-DE"]
    assert len(sample_memory.units) == 3

    first = sample_memory.units[0]
    assert first.source_text == "Save changes"
    assert first.target_text == "Enregistrer les modifications"
    assert first.quality == 90
    assert first.usage_count == 3
    assert sample_memory.header["creation_tool"] == "Test"


def test_parse_tmx_rejects_invalid_xml():
    with pytest.raises(MalformedInputError) as excinfo:
        parse_tmx("<tmx><body>", "broken.tmx")
    assert excinfo.value.code == "tmx_invalid_xml"


def test_parse_tmx_rejects_other_roots():
    with pytest.raises(MalformedInputError) as excinfo:
        parse_tmx("<xliff/>")
    assert excinfo.value.code == "tmx_invalid_root"


def test_parse_tmx_accepts_bytes(sample_tmx):
    memory = parse_tmx(sample_tmx.encode("utf-8"), "bytes.tmx")

    assert len(memory.units) == 3


def test_exact_match_ranks_first(sample_memory):
    matches = TmxMatcher().find_matches("Save changes", sample_memory, "fr-FR")

    assert matches[0].match_score == 100
    assert matches[0].match_type == MATCH_EXACT
    assert matches[0].target_text == "Enregistrer les modifications"
    assert matches[1].source_text == "Save change"
    assert matches[1].match_type == MATCH_PARTIAL
    assert matches[1].match_score < 100


def test_exact_match_only_ignores_surrounding_whitespace(sample_memory):
    matcher = TmxMatcher()

    assert matcher.find_best_match("  Save changes ", sample_memory, "fr-FR").match_score == 100

    case_variant = matcher.find_best_match("save changes", sample_memory, "fr-FR")
    assert case_variant.match_score == 99
    assert case_variant.match_type == MATCH_FUZZY


def test_region_variants_share_memory(sample_memory):
    match = TmxMatcher().find_best_match("Save changes", sample_memory, "fr-CA")

    assert match is not None
    assert match.unit.target_lang == "fr-FR"


def test_threshold_and_limit(sample_memory):
    matcher = TmxMatcher()

    assert matcher.find_matches("Completely unrelated words", sample_memory, "fr-FR") == []
    assert len(matcher.find_matches("Save changes", sample_memory, "fr-FR", limit=1)) == 1
    assert matcher.find_matches("   ", sample_memory, "fr-FR") == []


def test_apply_tmx_translations_uses_auto_apply_threshold(sample_memory):
    applied = TmxMatcher().apply_tmx_translations(["Save changes", "Unknown"], [sample_memory], "de-DE")

    assert list(applied) == ["Save changes"]
    assert applied["Save changes"].target_text.endswith("speichern")


def test_similarity_and_normalization():
    assert normalize_for_matching("  <b>Hello</b>   World ") == "hello world"
    assert similarity("", "") == 100.0
    assert similarity("abc", "abc") == 100.0
    assert similarity("abcd", "abce") == pytest.approx(75.0)


def test_statistics(sample_memory):
    stats = get_tmx_statistics(sample_memory)

    assert stats["total_units"] == 3
    assert stats["units_per_language"] == {"fr-FR": 2, "de-DE": 1}
    assert stats["average_quality"] == 90


def test_export_escapes_markup():
    document = export_tmx(["A & <b>B</b>"], {"fr-FR": ["A et <b>B</b>"]}, "en-US", timestamp="20240101T000000Z")

    assert "<seg>A &amp; &lt;b&gt;B&lt;/b&gt;</seg>" in document
    assert 'creationdate="20240101T000000Z"' in document
    memory = parse_tmx(document)
    assert memory.units[0].source_text == "A & <b>B</b>"
    assert memory.units[0].target_text == "A et <b>B</b>"


def test_export_memory_groups_targets_by_source(sample_memory):
    memory = parse_tmx(export_memory(sample_memory), "again.tmx")

    assert len(memory.units) == 3
    assert set(memory.target_langs) == {"fr-FR", "de-DE"}


def test_memory_serialization_keeps_units(sample_memory):
    restored = TmxMemory.from_dict(sample_memory.to_dict())

    assert restored.units == sample_memory.units
    assert restored.target_langs == sample_memory.target_langs
