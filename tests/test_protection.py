import pytest

from lingoshield.exceptions import MalformedInputError
from lingoshield.protection import (
    GlossaryEntry,
    ProtectionEncoder,
    ProtectionOptions,
    calculate_confidence,
    detect_dnt_candidates,
    export_glossary_csv,
    import_glossary_csv,
    import_glossary_xlsx,
)
from lingoshield.protection.autodetect import should_exclude_term
from lingoshield.protection.encoder import KIND_DNT, KIND_GLOSSARY, KIND_PLACEHOLDER, protect_terms


def test_placeholders_and_dnt_share_one_counter():
    encoder = ProtectionEncoder()
    encoded = encoder.encode("Open {url} in Chrome", ["Chrome"])

    assert encoded.processed_text == "Open __DNT_0__ in __DNT_1__"
    assert [item.kind for item in encoded.substitutions] == [KIND_PLACEHOLDER, KIND_DNT]
    assert encoder.restore("Ouvrez __DNT_1__ avec __DNT_0__", encoded.substitutions) == "Ouvrez Chrome avec {url}"


def test_glossary_term_inside_sentence_restores_target(water_glossary):
    encoded = ProtectionEncoder().encode("Please bring me some water", [], water_glossary, "en-US", "fr-FR")

    assert encoded.processed_text == "Please bring me some __GLOSS_0__"
    assert encoded.substitutions[0].kind == KIND_GLOSSARY
    restored = ProtectionEncoder.restore("Apportez-moi de l'__GLOSS_0__", encoded.substitutions)
    assert "eau" in restored
    assert "__GLOSS_" not in restored


def test_whole_text_glossary_match_skips_substitution(water_glossary):
    encoded = ProtectionEncoder().encode("  water ", [], water_glossary, "en-US", "fr-FR")

    assert encoded.is_full_match
    assert encoded.full_match == "eau"
    assert encoded.substitutions == []


def test_glossary_is_case_sensitive_by_default(water_glossary):
    encoder = ProtectionEncoder()
    assert encoder.find_full_match("Water", water_glossary, "en-US", "fr-FR") is None

    relaxed = ProtectionEncoder(ProtectionOptions(glossary_case_sensitive=False))
    assert relaxed.find_full_match("Water", water_glossary, "en-US", "fr-FR") == "eau"


def test_single_word_glossary_terms_match_whole_words_only():
    glossary = [GlossaryEntry(translations={"en-US": "cat", "fr-FR": "chat"})]
    encoded = ProtectionEncoder().encode("concatenate the cat", [], glossary, "en-US", "fr-FR")

    assert encoded.processed_text == "concatenate the __GLOSS_0__"


def test_longest_term_wins():
    encoded = ProtectionEncoder().encode("Visit New York City today", ["New York", "New York City"])

    assert encoded.processed_text == "Visit __DNT_0__ today"
    assert encoded.substitutions[0].original == "New York City"


def test_dnt_matching_ignores_case_and_keeps_source_spelling():
    encoded = ProtectionEncoder().encode("Use CHROME or chrome", ["Chrome"])

    assert encoded.processed_text == "Use __DNT_0__ or __DNT_1__"
    assert [item.original for item in encoded.substitutions] == ["CHROME", "chrome"]


def test_dnt_takes_precedence_over_glossary_for_same_term():
    glossary = [GlossaryEntry(translations={"en-US": "Cloud", "fr-FR": "Nuage"})]
    encoded = ProtectionEncoder().encode("Open Cloud now", ["Cloud"], glossary, "en-US", "fr-FR")

    assert encoded.processed_text == "Open __DNT_0__ now"
    assert encoded.substitutions[0].original == "Cloud"


def test_missing_markers_are_reported():
    encoder = ProtectionEncoder()
    encoded = encoder.encode("Open {url} in Chrome", ["Chrome"])

    missing = encoder.missing_markers("Ouvrez __DNT_0__", encoded.substitutions)
    assert [item.original for item in missing] == ["Chrome"]


def test_protect_terms_returns_marker_map():
    processed, mapping = protect_terms("Ship {count} boxes with FedEx", ["FedEx"])

    assert processed == "Ship {count} boxes with __DNT_0__"
    assert mapping == {"__DNT_0__": "FedEx"}


def test_glossary_entry_lookup_falls_back_to_base_language():
    entry = GlossaryEntry(translations={"fr-FR": "eau", "en-US": "water"})

    assert entry.get("fr-FR") == "eau"
    assert entry.get("FR-fr") == "eau"
    assert entry.get("fr") == "eau"
    assert entry.get("de-DE") is None


def test_import_glossary_csv_maps_headers_to_languages():
    content = "\ufeffen-US,French\nwater,eau\nfire,feu\n,\n"
    entries, warnings = import_glossary_csv(content, ["en-US", "fr-FR"])

    assert warnings == []
    assert [entry.translations for entry in entries] == [
        {"en-US": "water", "fr-FR": "eau"},
        {"en-US": "fire", "fr-FR": "feu"},
    ]


def test_import_glossary_csv_warns_about_unknown_columns():
    entries, warnings = import_glossary_csv("en-US,Klingon\nwater,bIQ\n", ["en-US", "fr-FR"])

    assert entries[0].translations == {"en-US": "water"}
    assert any("Klingon" in warning for warning in warnings)


def test_import_glossary_csv_requires_a_data_row():
    with pytest.raises(MalformedInputError) as excinfo:
        import_glossary_csv("en-US,fr-FR\n")
    assert excinfo.value.code == "glossary_csv_too_short"


def test_export_glossary_csv_sorts_language_columns():
    entries = [GlossaryEntry(translations={"fr-FR": "eau", "en-US": "water"})]

    assert export_glossary_csv(entries) == '\ufeffen-US,fr-FR\n"water","eau"'
    assert export_glossary_csv(entries, include_bom=False).startswith("en-US")


def test_export_glossary_csv_rejects_empty_glossary():
    with pytest.raises(ValueError):
        export_glossary_csv([])


def test_calculate_confidence_bands():
    assert calculate_confidence(3, 50, 8) == (90, "high")
    assert calculate_confidence(1, 30, 3) == (40, "medium")
    assert calculate_confidence(0, 20, 2) == (20, "low")


def test_detect_dnt_candidates_finds_urls_and_placeholders():
    result = detect_dnt_candidates([
        "Visit https://example.com/docs for {product_name} help",
        "",
    ])

    terms = {candidate.term: candidate for candidate in result.candidates}
    assert result.total_scanned == 2
    assert "https://example.com/docs" in terms
    assert terms["https://example.com/docs"].category == "url"
    assert terms["{product_name}"].category == "code"


def test_detect_dnt_candidates_skips_existing_terms():
    result = detect_dnt_candidates(["Install NodeJS and NodeJS tools"], existing_dnt=["NodeJS"])

    assert "NodeJS" not in [candidate.term for candidate in result.candidates]


def test_detect_dnt_candidates_counts_frequency():
    result = detect_dnt_candidates(["Ask @support", "Write to @support again"])

    handle = next(candidate for candidate in result.candidates if candidate.term == "@support")
    assert handle.frequency == 2
    assert handle.reason == "Social media handle"


def test_import_glossary_xlsx_reads_first_sheet(workbook_bytes):
    data = workbook_bytes([["en-US", "French"], ["water", "eau"], ["count", 3]])

    entries, warnings = import_glossary_xlsx(data, ["en-US", "fr-FR"])

    assert warnings == []
    assert [entry.translations for entry in entries] == [
        {"en-US": "water", "fr-FR": "eau"},
        {"en-US": "count", "fr-FR": "3"},
    ]


def test_import_glossary_xlsx_rejects_non_workbooks():
    with pytest.raises(MalformedInputError) as excinfo:
        import_glossary_xlsx(b"not a workbook")
    assert excinfo.value.code == "glossary_xlsx_invalid"


def test_import_glossary_xlsx_requires_a_data_row(workbook_bytes):
    with pytest.raises(MalformedInputError) as excinfo:
        import_glossary_xlsx(workbook_bytes([["en-US", "fr-FR"]]))
    assert excinfo.value.code == "glossary_xlsx_too_short"


def test_detect_dnt_candidates_suggests_version_numbers():
    result = detect_dnt_candidates(["Upgrade to 2.4.1 today, 2.4.1 fixes the bug"])

    version = next(candidate for candidate in result.candidates if candidate.term == "2.4.1")
    assert version.reason == "Version number"
    assert version.frequency == 2
    assert (version.score, version.confidence) == (65, "medium")


def test_only_plain_integers_are_excluded():
    assert should_exclude_term("2024")
    assert not should_exclude_term("2.4.1")
    assert not should_exclude_term("v1.2")
