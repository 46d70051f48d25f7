import json

from lingoshield.ai.providers import TranslationProvider
from lingoshield.config import PipelineConfig
from lingoshield.exceptions import ProviderError
from lingoshield.subtitles.parser import parse_srt, parse_vtt
from lingoshield.translation.controller import TranslationController
from lingoshield.translation.manager import TranslationDocument, TranslationManager


class FlakyProvider(TranslationProvider):
    """Fails for any text containing "bad", upper-cases everything else."""

    name = "flaky"

    def translate(self, text, target_lang, source_lang=None):
        if "bad" in text:
            raise ProviderError("boom", code="provider_timeout")
        return text.upper()


class ConstantProvider(TranslationProvider):
    name = "constant"

    def __init__(self, value):
        self.value = value

    def translate(self, text, target_lang, source_lang=None):
        return self.value


def test_each_unique_text_is_translated_once_per_language(pipeline_config, echo):
    manager = TranslationManager(pipeline_config, echo)
    documents = [
        TranslationDocument("a", "Hello"),
        TranslationDocument("b", "<p>Hello</p>"),
        TranslationDocument("c", "  Hello  "),
    ]

    result = manager.translate_documents(documents, ["fr-FR", "de-DE"])

    assert echo.calls == 2
    assert result["success"]
    assert result["completed_languages"] == ["fr-FR", "de-DE"]
    assert result["outputs"]["de-DE"] == {"a": "Hello", "b": "<p>Hello</p>", "c": "  Hello  "}
    assert result["stats"]["unique_count"] == 1
    assert result["stats"]["duplicate_count"] == 2
    assert result["total_translated"] == 2
    assert result["content_types"] == {"a": "plain", "b": "html", "c": "plain"}


def test_html_is_translated_as_one_unit_and_redistributed(pipeline_config, upper):
    manager = TranslationManager(pipeline_config, upper)

    output = manager.translate_text("<b>Bold</b> and <u>under</u>", ["fr-FR"])

    assert upper.texts == ["Bold and under"]
    assert output == {"fr-FR": "<b>BOLD</b> AND <u>UNDER</u>"}


def test_html_comparison_text_is_translated(pipeline_config, upper):
    manager = TranslationManager(pipeline_config, upper)

    assert manager.translate_text("<p>1 < 2 apples</p>", ["fr-FR"]) == {"fr-FR": "<p>1 < 2 APPLES</p>"}
    assert upper.texts == ["1 < 2 apples"]


def test_redistribution_keeps_every_character_of_unspaced_translations():
    manager = TranslationManager(PipelineConfig(), ConstantProvider("こんにちは世界です"))

    output = manager.translate_text("<b>Hello</b> <i>world</i>", ["ja-JP"])

    assert output == {"ja-JP": "<b>こんにちは</b> <i>世界です</i>"}


def test_full_glossary_match_bypasses_provider(echo, water_glossary):
    manager = TranslationManager(PipelineConfig(glossary=water_glossary), echo)

    assert manager.translate_text("water", ["fr-FR"]) == {"fr-FR": "eau"}
    assert echo.calls == 0
    assert manager.stats["glossary_count"] == 1


def test_glossary_term_in_sentence_is_enforced(echo, water_glossary):
    manager = TranslationManager(PipelineConfig(glossary=water_glossary), echo)

    output = manager.translate_text("Please bring me some water", ["fr-FR"])

    assert "eau" in output["fr-FR"]
    assert "__GLOSS_" not in output["fr-FR"]
    assert echo.calls == 1


def test_glossary_without_target_language_is_ignored(echo, water_glossary):
    manager = TranslationManager(PipelineConfig(glossary=water_glossary), echo)

    assert manager.translate_text("water", ["de-DE"]) == {"de-DE": "water"}
    assert echo.calls == 1


def test_dnt_terms_survive_translation(upper):
    manager = TranslationManager(PipelineConfig(dnt_terms=["Chrome"]), upper)

    output = manager.translate_text("Open {url} in Chrome", ["fr-FR"])

    assert upper.texts == ["Open __DNT_0__ in __DNT_1__"]
    assert output == {"fr-FR": "OPEN {url} IN Chrome"}


def test_text_made_only_of_protected_spans_skips_provider(echo):
    manager = TranslationManager(PipelineConfig(dnt_terms=["Chrome"]), echo)

    assert manager.translate_text("Chrome", ["fr-FR"]) == {"fr-FR": "Chrome"}
    assert manager.translate_text(" {name} ", ["fr-FR"]) == {"fr-FR": " {name} "}
    assert echo.calls == 0
    assert manager.stats["protected_count"] == 1


def test_tmx_prefill_bypasses_provider(echo, sample_memory):
    manager = TranslationManager(PipelineConfig(tmx_memories=[sample_memory]), echo)

    result = manager.translate_documents(
        [TranslationDocument("a", "Save changes"), TranslationDocument("b", "Something new")],
        ["fr-FR"],
    )

    assert result["outputs"]["fr-FR"]["a"] == "Enregistrer les modifications"
    assert result["outputs"]["fr-FR"]["b"] == "Something new"
    assert result["stats"]["tmx_count"] == 1
    assert result["stats"]["provider_count"] == 1
    assert echo.calls == 1


def test_tmx_can_be_disabled(echo, sample_memory):
    manager = TranslationManager(PipelineConfig(tmx_memories=[sample_memory], use_tmx=False), echo)

    assert manager.translate_text("Save changes", ["fr-FR"]) == {"fr-FR": "Save changes"}
    assert echo.calls == 1


def test_provider_failures_are_reported_and_keep_source(pipeline_config):
    manager = TranslationManager(pipeline_config, FlakyProvider())

    result = manager.translate_documents(
        [TranslationDocument("good", "good"), TranslationDocument("bad", "bad"), TranslationDocument("html", "<i>bad</i>")],
        ["fr-FR"],
    )

    assert not result["success"]
    assert not result["cancelled"]
    assert result["total_failed"] == 1
    assert result["failed_items"] == [
        {"text": "bad", "language_code": "fr-FR", "error": "boom", "code": "provider_timeout"}
    ]
    assert result["outputs"]["fr-FR"] == {"good": "GOOD", "bad": "bad", "html": "<i>bad</i>"}
    assert result["completed_languages"] == ["fr-FR"]


def test_empty_provider_result_is_invalid(pipeline_config):
    manager = TranslationManager(pipeline_config, ConstantProvider("   "))

    result = manager.translate_documents([TranslationDocument("a", "Hello")], ["fr-FR"])

    assert result["failed_items"][0]["code"] == "invalid_translation"
    assert result["outputs"]["fr-FR"]["a"] == "Hello"


def test_dropped_marker_is_invalid():
    manager = TranslationManager(PipelineConfig(dnt_terms=["Chrome"]), ConstantProvider("Ouvrez le navigateur"))

    result = manager.translate_documents([TranslationDocument("a", "Open Chrome")], ["fr-FR"])

    failure = result["failed_items"][0]
    assert failure["code"] == "invalid_translation"
    assert "protected_term_lost:Chrome" in failure["error"]


def test_json_documents_are_rebuilt_with_target_locale(pipeline_config, upper):
    document = {
        "name": "Course",
        "locale": "en-US",
        "episodes": [{"name": "Intro {x}", "slides": []}],
    }
    manager = TranslationManager(pipeline_config, upper)

    result = manager.translate_documents([TranslationDocument("course.json", json.dumps(document))], ["fr-FR"])

    rebuilt = json.loads(result["outputs"]["fr-FR"]["course.json"])
    assert rebuilt["locale"] == "fr-FR"
    assert rebuilt["name"] == "COURSE"
    assert rebuilt["episodes"][0]["name"] == "INTRO {X}"
    assert result["content_types"]["course.json"] == "json"


def test_progress_phases_are_reported(pipeline_config, echo):
    events = []
    manager = TranslationManager(pipeline_config, echo)

    manager.translate_documents(
        [TranslationDocument("a", "One"), TranslationDocument("b", "Two")],
        ["fr-FR", "de-DE"],
        progress_callback=events.append,
    )

    phases = [(event.current_language, event.phase) for event in events]
    assert phases == [
        ("fr-FR", "translating"),
        ("fr-FR", "translating"),
        ("fr-FR", "completed"),
        ("de-DE", "translating"),
        ("de-DE", "translating"),
        ("de-DE", "completed"),
    ]
    assert events[1].current_item == 2
    assert events[1].total_items == 2
    assert events[-1].completed_languages == 2
    assert events[0].current_language_name == "French (FR)"


def test_callback_returning_true_cancels_and_omits_language(pipeline_config, echo):
    manager = TranslationManager(pipeline_config, echo)
    documents = [TranslationDocument(name, name) for name in ("one", "two", "three")]

    result = manager.translate_documents(documents, ["fr-FR", "de-DE"], progress_callback=lambda progress: True)

    assert echo.calls == 1
    assert result["cancelled"]
    assert not result["success"]
    assert result["outputs"] == {}
    assert result["completed_languages"] == []


def test_languages_finished_before_cancel_are_kept(pipeline_config, echo):
    manager = TranslationManager(pipeline_config, echo)

    def stop_after_first_language(progress):
        return progress.phase == "completed"

    result = manager.translate_documents(
        [TranslationDocument("a", "One")], ["fr-FR", "de-DE"], progress_callback=stop_after_first_language
    )

    assert result["cancelled"]
    assert list(result["outputs"]) == ["fr-FR"]
    assert echo.calls == 1


def test_cancel_check_stops_before_any_work(pipeline_config, echo):
    manager = TranslationManager(pipeline_config, echo)

    result = manager.translate_documents([TranslationDocument("a", "One")], ["fr-FR"], cancel_check=lambda: True)

    assert result["cancelled"]
    assert result["outputs"] == {}
    assert echo.calls == 0


def test_cancelled_controller_stops_the_run(pipeline_config, echo):
    controller = TranslationController()
    controller.cancel()
    manager = TranslationManager(pipeline_config, echo, controller=controller)

    result = manager.translate_documents([TranslationDocument("a", "One")], ["fr-FR"])

    assert result["cancelled"]
    assert echo.calls == 0


def test_worker_pool_translates_every_unit(upper):
    manager = TranslationManager(PipelineConfig(max_workers=4), upper)
    documents = [TranslationDocument(f"d{n}", f"text {n}") for n in range(6)]

    result = manager.translate_documents(documents, ["fr-FR"])

    assert sorted(upper.texts) == sorted(f"text {n}" for n in range(6))
    assert result["outputs"]["fr-FR"] == {f"d{n}": f"TEXT {n}" for n in range(6)}


def test_subtitles_keep_timecodes_and_tags(pipeline_config, upper, sample_srt):
    subtitle_file = parse_srt(sample_srt, "ep.srt")
    manager = TranslationManager(pipeline_config, upper)

    result = manager.translate_subtitles([subtitle_file], ["fr-FR"])

    assert result["success"]
    assert result["outputs"]["fr-FR"]["ep_fr-FR.srt"] == (
        "1\n00:00:01,000 --> 00:00:03,000\nHELLO <b>WORLD</b>\n\n"
        "2\n00:00:03,500 --> 00:00:05,000\nSECOND LINE\n\n"
    )
    assert result["length_issues"] == {}


def test_subtitle_voice_tags_are_protected(pipeline_config, upper, sample_vtt):
    subtitle_file = parse_vtt(sample_vtt, "talk.vtt")
    manager = TranslationManager(pipeline_config, upper)

    result = manager.translate_subtitles([subtitle_file], ["fr-FR"])

    content = result["outputs"]["fr-FR"]["talk_fr-FR.vtt"]
    assert "<v Alice>Alice SAYS HI</v>" in content
    assert "SECOND CUE" in content
    assert "NOTE This is a comment" in content


def test_subtitle_length_overflow_is_reported(pipeline_config, echo):
    long_line = "word " * 9 + "end"
    subtitle_file = parse_srt(f"1\n00:00:01,000 --> 00:00:09,000\n{long_line}\n", "long.srt")
    manager = TranslationManager(pipeline_config, echo)

    result = manager.translate_subtitles([subtitle_file], ["fr-FR"])

    issues = result["length_issues"]["fr-FR"]["long.srt"]
    assert issues[0]["type"] == "length-overflow"
    assert issues[0]["subtitle_index"] == 1
