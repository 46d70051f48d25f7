import json
import re

import pytest

from lingoshield.exceptions import ExtractionError
from lingoshield.patterns import (
    META_SKILLS_SCHEMA,
    SCHEMA_REGISTRY,
    JsonSchema,
    detect_schema,
    matches_path,
    register_schema,
    source_locale_from_json,
)
from lingoshield.translation.dedup import Deduplicator
from lingoshield.translation.extractor import (
    CONTENT_HTML,
    CONTENT_JSON,
    CONTENT_PLAIN,
    ContentExtractor,
    ExtractedItem,
    extract,
    extract_html,
    extract_json,
    render_template,
)
from lingoshield.translation.reconstruction import (
    ReconstructionEngine,
    rebuild,
    redistribute,
    split_proportionally,
)


def course_document():
    return {
        "name": "Feedback basics",
        "locale": "en-US",
        "episodes": [
            {
                "name": "Intro",
                "description": "",
                "slides": [
                    {
                        "name": "Opening",
                        "content": {"title": "Welcome", "theme": "dark", "duration": 30},
                    }
                ],
            }
        ],
    }


def test_matches_path_supports_array_wildcards():
    assert matches_path("$.episodes[2].name", "$.episodes[*].name")
    assert matches_path("episodes[0].name", "$.episodes[*].name")
    assert not matches_path("$.episodes[0].slides[0].name", "$.episodes[*].name")
    assert matches_path("$.a.b.c", "$.a.*")


def test_schema_detection_and_source_locale():
    raw = json.dumps(course_document())

    assert detect_schema(raw) is META_SKILLS_SCHEMA
    assert detect_schema('{"title": "no episodes"}') is None
    assert source_locale_from_json(raw) == "en-US"
    assert source_locale_from_json("not json") is None


@pytest.fixture
def menu_schema():
    schema = JsonSchema(
        name="menu",
        display_name="Menu labels",
        detect_pattern=re.compile(r'"menu"\s*:\s*\['),
        translatable_paths=["$.menu[*].label"],
    )
    yield schema
    SCHEMA_REGISTRY.pop(schema.name, None)


def test_custom_schema_passed_to_extractor(menu_schema):
    raw = json.dumps({"menu": [{"id": "open", "label": "Open"}, {"id": "quit", "label": "Quit"}]})

    extraction = ContentExtractor(schemas=[menu_schema]).extract(raw)

    assert extraction.content_type == CONTENT_JSON
    assert extraction.schema_name == "menu"
    assert [(item.path, item.text) for item in extraction.items] == [
        ("$.menu[0].label", "Open"),
        ("$.menu[1].label", "Quit"),
    ]
    rebuilt = json.loads(ReconstructionEngine().rebuild(extraction, {"T1": "Ouvrir", "T2": "Quitter"}))
    assert rebuilt == {"menu": [{"id": "open", "label": "Ouvrir"}, {"id": "quit", "label": "Quitter"}]}

    # Only the schemas handed to the extractor are tried
    assert ContentExtractor(schemas=[META_SKILLS_SCHEMA]).extract(raw).content_type == CONTENT_PLAIN


def test_registered_schema_is_detected(menu_schema):
    raw = json.dumps({"menu": [{"label": "Help"}]})
    assert detect_schema(raw) is None

    register_schema(menu_schema)

    assert detect_schema(raw) is menu_schema
    extraction = ContentExtractor().extract(raw)
    assert extraction.schema_name == "menu"
    assert [item.text for item in extraction.items] == ["Help"]


def test_html_extraction_tracks_every_run():
    extraction = extract_html("<b>Bold</b> and <u>under</u>")

    assert extraction.content_type == CONTENT_HTML
    assert extraction.text_segments == ["Bold", " and ", "under"]
    assert render_template(extraction) == "<b>{T1}</b>{T2}<u>{T3}</u>"
    units = extraction.translation_units()
    assert [unit.text for unit in units] == ["Bold and under"]


def test_html_identity_rebuild_is_byte_exact():
    html = '<p class="x">Hello <a href="/a">there</a>,\n  friend</p>'
    extraction = extract(html)
    identity = {item.id: item.text for item in extraction.items}

    assert rebuild(extraction, identity) == html


def test_html_redistribution_keeps_run_whitespace():
    extraction = extract_html("<b>Bold</b> and <u>under</u>")

    output = ReconstructionEngine().rebuild_from_units(extraction, {"H": "BOLD AND UNDER"})
    assert output == "<b>BOLD</b> AND <u>UNDER</u>"


def test_html_without_joined_translation_returns_original():
    extraction = extract_html("<i>keep</i>")

    assert ReconstructionEngine().rebuild_from_units(extraction, {}) == "<i>keep</i>"


def test_redistribute_leaves_whitespace_only_runs():
    extraction = extract_html("<p>One</p> <p>Two</p>")

    assert redistribute("Uno Dos", extraction.template) == ["Uno", " ", "Dos"]


def test_stray_angle_bracket_falls_back_to_plain():
    extraction = extract("a < b", hint="html")

    assert extraction.content_type == CONTENT_PLAIN
    assert extraction.text_segments == ["a < b"]


def test_less_than_sign_inside_html_stays_in_text_run():
    extraction = extract_html("<p>1 < 2 apples</p><!-- note -->")

    assert extraction.content_type == CONTENT_HTML
    assert extraction.text_segments == ["1 < 2 apples"]
    assert [segment.content for segment in extraction.template.segments if segment.type == "tag"] == [
        "<p>", "</p>", "<!-- note -->",
    ]


def test_plain_text_keeps_surrounding_whitespace():
    extraction = extract("  Hello world \n")

    assert extraction.content_type == CONTENT_PLAIN
    assert extraction.text_segments == ["Hello world"]
    assert rebuild(extraction, {"T1": "Bonjour le monde"}) == "  Bonjour le monde \n"


def test_blank_plain_text_has_no_units():
    extraction = extract("   ")

    assert extraction.translation_units() == []
    assert rebuild(extraction, {}) == "   "


def test_missing_plain_translation_leaves_token():
    assert rebuild(extract("Hello"), {}) == "{T1}"


def test_json_extraction_follows_schema_paths():
    extraction = extract(json.dumps(course_document()))

    assert extraction.content_type == CONTENT_JSON
    assert extraction.schema_name == "meta_skills"
    assert extraction.source_locale == "en-US"
    assert [(item.path, item.text) for item in extraction.items] == [
        ("$.name", "Feedback basics"),
        ("$.episodes[0].name", "Intro"),
        ("$.episodes[0].slides[0].name", "Opening"),
        ("$.episodes[0].slides[0].content.title", "Welcome"),
    ]
    assert not extraction.protects_markers


def test_json_leaves_equal_to_dnt_terms_are_not_extracted():
    extraction = extract(json.dumps(course_document()), dnt_terms=["intro"])

    assert "Intro" not in extraction.text_segments
    assert len(extraction.items) == 3


def test_json_rebuild_replaces_tokens_and_forces_locale():
    extraction = extract(json.dumps(course_document()))
    translations = {item.id: item.text.upper() for item in extraction.items}

    rebuilt = json.loads(rebuild(extraction, translations, "fr-FR"))
    assert rebuilt["locale"] == "fr-FR"
    assert rebuilt["name"] == "FEEDBACK BASICS"
    slide = rebuilt["episodes"][0]["slides"][0]
    assert slide["content"] == {"title": "WELCOME", "theme": "dark", "duration": 30}
    assert rebuilt["episodes"][0]["description"] == ""


def test_json_identity_rebuild_preserves_data():
    document = course_document()
    extraction = extract(json.dumps(document))
    identity = {item.id: item.text for item in extraction.items}

    assert json.loads(rebuild(extraction, identity)) == document


def test_invalid_json_falls_back_to_plain_text():
    extraction = ContentExtractor().extract('{"name": "x", "episodes": [')

    assert extraction.content_type == CONTENT_PLAIN


def test_extract_json_raises_on_unparseable_input():
    with pytest.raises(ExtractionError) as excinfo:
        extract_json("{broken", META_SKILLS_SCHEMA)
    assert excinfo.value.code == "json_invalid"


def test_detect_content_type():
    extractor = ContentExtractor()

    assert extractor.detect_content_type("<p>Hi</p>") == CONTENT_HTML
    assert extractor.detect_content_type("Just text") == CONTENT_PLAIN
    assert extractor.detect_content_type(json.dumps(course_document())) == CONTENT_JSON


def test_split_proportionally_breaks_on_spaces():
    assert split_proportionally("aaaa bbbb", [4, 4]) == ["aaaa", "bbbb"]
    assert split_proportionally("Bold and under", [4, 3, 5]) == ["Bold", "and", "under"]


def test_split_proportionally_without_spaces_keeps_every_character():
    assert split_proportionally("abcdefgh", [1, 1]) == ["abcd", "efgh"]
    assert split_proportionally("こんにちは世界です", [5, 5]) == ["こんにちは", "世界です"]

    pieces = split_proportionally("一二三四五六七八九十", [2, 3, 5])
    assert "".join(pieces) == "一二三四五六七八九十"
    assert sum(len(piece) for piece in pieces) == 10


@pytest.mark.parametrize("text, lengths", [
    ("The quick brown fox jumps over the lazy dog", [3, 5, 9]),
    ("Enregistrer les modifications maintenant", [4, 4]),
    ("Save all changes", [4, 3, 7]),
])
def test_split_proportionally_only_drops_break_spaces(text, lengths):
    pieces = split_proportionally(text, lengths)

    assert len(pieces) == len(lengths)
    assert " ".join(piece for piece in pieces if piece) == text


def test_split_proportionally_edge_cases():
    assert split_proportionally("x", []) == []
    assert split_proportionally("  solo  ", [3]) == ["solo"]
    assert split_proportionally("ab", [1, 1, 1]) == ["a", "b", ""]


def test_dedup_groups_trimmed_texts_across_files():
    files = [
        [ExtractedItem("T1", "$.a", "Hi"), ExtractedItem("T2", "$.b", "Bye")],
        [ExtractedItem("T1", "$.c", " Hi "), ExtractedItem("T2", "$.d", "hi")],
    ]
    result = Deduplicator.build(files)

    assert result.unique_strings == ["Hi", "Bye", "hi"]
    assert result.stats() == {"total_items": 4, "unique_count": 3, "duplicate_count": 1}
    assert result.occurrence_count == 4


def test_dedup_fan_out_routes_to_every_occurrence():
    files = [
        [ExtractedItem("T1", "$.a", "Hi")],
        [ExtractedItem("T1", "$.b", "Hi"), ExtractedItem("T2", "$.c", "Other")],
    ]
    result = Deduplicator.build(files)

    per_file = Deduplicator.fan_out(result, {"Hi": "Salut"}, 2)
    assert per_file == [{"T1": "Salut"}, {"T1": "Salut"}]
