import base64
import io

import openpyxl
import pytest

from lingoshield.core.database import MemoryStore
from lingoshield.translation.controller import TranslationController
from lingoshield.web import create_app
from lingoshield.web import tasks


@pytest.fixture
def client():
    app = create_app(MemoryStore())
    app.config["TESTING"] = True
    return app.test_client()


def start_job(client, **body):
    body.setdefault("languages", ["fr-FR"])
    body["async"] = False
    return client.post("/api/jobs/", json=body)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_unknown_route_returns_json_404(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.get_json() == {"error": "Not found"}


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

def test_settings_start_from_defaults(client):
    data = client.get("/api/settings/").get_json()

    assert data["config"]["ai_provider"] == "echo"
    assert "openai" in data["meta"]["builtin_providers"]


def test_settings_update_merges_sections(client):
    response = client.put("/api/settings/", json={"config": {"translation": {"max_workers": 2}}})

    assert response.status_code == 200
    config = client.get("/api/settings/").get_json()["config"]
    assert config["translation"]["max_workers"] == 2
    assert config["translation"]["fuzzy_threshold"] == 70


@pytest.mark.parametrize("body", [
    {},
    {"config": {"translation": {"fuzzy_threshold": 150}}},
    {"config": {"log_mode": "verbose"}},
    {"config": {"ai_provider": "bad name!"}},
    {"config": {"my-llm": {"timeout": -1}}},
    {"config": {"subtitles": {"overlap_resolution": "explode"}}},
])
def test_invalid_settings_are_rejected(client, body):
    assert client.put("/api/settings/", json=body).status_code == 400


def test_dnt_terms_round_trip(client):
    response = client.put("/api/settings/dnt", json={"terms": ["API", " api ", "", "Chrome"]})

    assert response.get_json()["terms"] == ["API", "Chrome"]
    assert client.get("/api/settings/dnt").get_json() == {"terms": ["API", "Chrome"]}
    assert client.put("/api/settings/dnt", json={"terms": "API"}).status_code == 400


def test_dnt_detection(client):
    response = client.post("/api/settings/dnt/detect", json={"texts": ["Visit https://example.com/docs today"]})

    terms = [candidate["term"] for candidate in response.get_json()["candidates"]]
    assert "https://example.com/docs" in terms


def test_glossary_update_and_export(client):
    assert client.get("/api/settings/glossary/export").status_code == 404

    response = client.put("/api/settings/glossary", json={
        "entries": [{"translations": {"en-US": "water", "fr-FR": "eau"}}, {"translations": {}}],
    })
    assert response.get_json()["count"] == 1

    assert client.get("/api/settings/glossary").get_json()["entries"] == [
        {"translations": {"en-US": "water", "fr-FR": "eau"}}
    ]
    exported = client.get("/api/settings/glossary/export").get_data(as_text=True)
    assert exported.startswith("\ufeffen-US,fr-FR")


def test_glossary_csv_import_replace_and_append(client):
    csv_content = "en-US,fr-FR\nwater,eau\n"

    first = client.post("/api/settings/glossary/import", json={"content": csv_content})
    assert first.get_json()["count"] == 1

    second = client.post("/api/settings/glossary/import", json={"content": csv_content, "mode": "append"})
    assert second.get_json()["count"] == 2

    third = client.post("/api/settings/glossary/import", json={"content": csv_content})
    assert third.get_json()["count"] == 1


def test_glossary_xlsx_import(client, workbook_bytes):
    content = base64.b64encode(workbook_bytes([["en-US", "fr-FR"], ["water", "eau"]])).decode("ascii")

    response = client.post("/api/settings/glossary/import", json={"content": content, "format": "xlsx"})

    assert response.get_json()["count"] == 1
    assert client.post(
        "/api/settings/glossary/import", json={"content": "%%%", "format": "xlsx"}
    ).status_code == 400
    assert client.post(
        "/api/settings/glossary/import", json={"content": "a,b", "format": "ods"}
    ).status_code == 400


def test_glossary_import_rejects_header_only_csv(client):
    response = client.post("/api/settings/glossary/import", json={"content": "en-US,fr-FR\n"})

    assert response.status_code == 400
    assert response.get_json()["code"] == "glossary_csv_too_short"


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def test_extract_html(client):
    data = client.post("/api/extract", json={"content": "<b>Bold</b> and <u>under</u>"}).get_json()

    assert data["content_type"] == "html"
    assert [item["text"] for item in data["items"]] == ["Bold", " and ", "under"]
    assert len(data["translation_units"]) == 1
    assert data["template"] == "<b>{T1}</b>{T2}<u>{T3}</u>"


def test_extract_validates_input(client):
    assert client.post("/api/extract", json={"content": 5}).status_code == 400
    assert client.post("/api/extract", json={"content": "x", "content_type": "xml"}).status_code == 400


def test_rebuild_plain_text(client):
    response = client.post("/api/rebuild", json={"content": " Hello ", "translations": {"T1": "Bonjour"}})

    assert response.get_json() == {"content_type": "plain", "output": " Bonjour "}
    assert client.post("/api/rebuild", json={"content": "Hello"}).status_code == 400


def test_inspect_workbook(client, workbook_bytes):
    rows = [["ID", "Row", "Type", "English", "fr-FR"], [1, 1, "title", "Welcome", None]]
    content = base64.b64encode(workbook_bytes(rows)).decode("ascii")

    data = client.post("/api/workbook/inspect", json={"content": content, "name": "course.xlsx"}).get_json()

    assert data["source_language"] == "en-GB"
    assert data["existing_languages"] == ["fr-FR"]
    assert data["items"] == [{"id": "R2", "path": "row:2", "text": "Welcome"}]


@pytest.mark.parametrize("body", [
    {},
    {"content": "%%%"},
    {"content": base64.b64encode(b"plain text").decode("ascii")},
])
def test_inspect_workbook_rejects_bad_content(client, body):
    assert client.post("/api/workbook/inspect", json=body).status_code == 400


# ---------------------------------------------------------------------------
# Translation memories
# ---------------------------------------------------------------------------

def test_tmx_import_match_export_delete(client, sample_tmx):
    created = client.post("/api/tmx/", json={"name": "sample.tmx", "content": sample_tmx})
    assert created.status_code == 201
    assert created.get_json()["memory"]["total_units"] == 3

    memories = client.get("/api/tmx/").get_json()["memories"]
    assert [memory["name"] for memory in memories] == ["sample.tmx"]

    matches = client.post("/api/tmx/match", json={"text": "Save changes", "target_lang": "fr-FR"}).get_json()
    assert matches["matches"][0]["match_score"] == 100
    assert matches["matches"][0]["target_text"] == "Enregistrer les modifications"

    exported = client.get("/api/tmx/sample.tmx/export")
    assert exported.status_code == 200
    assert "<tmx" in exported.get_data(as_text=True)

    assert client.delete("/api/tmx/sample.tmx").status_code == 200
    assert client.delete("/api/tmx/sample.tmx").status_code == 404
    assert client.get("/api/tmx/sample.tmx/export").status_code == 404


def test_tmx_import_rejects_invalid_xml(client):
    response = client.post("/api/tmx/", json={"name": "broken.tmx", "content": "<tmx><body>"})

    assert response.status_code == 400
    assert response.get_json()["code"] == "tmx_invalid_xml"


def test_tmx_match_validates_input(client):
    assert client.post("/api/tmx/match", json={"text": "Hi"}).status_code == 400
    assert client.post("/api/tmx/match", json={"text": "Hi", "target_lang": "fr-FR", "threshold": 101}).status_code == 400
    assert client.post("/api/tmx/match", json={"text": "Hi", "target_lang": "fr-FR", "limit": 0}).status_code == 400


# ---------------------------------------------------------------------------
# Subtitle validation
# ---------------------------------------------------------------------------

def test_validate_subtitles(client, sample_srt, sample_vtt):
    response = client.post("/api/subtitles/validate", json={"files": [
        {"file_name": "ep.srt", "content": sample_srt},
        {"file_name": "talk.vtt", "content": sample_vtt},
    ]})

    data = response.get_json()
    assert response.status_code == 200
    assert data["files"]["ep.srt"]["format"] == "srt"
    assert data["files"]["ep.srt"]["cue_count"] == 2
    assert data["files"]["talk.vtt"]["format"] == "vtt"
    assert data["total_subtitles"] == 4
    assert not data["has_errors"]
    assert "timing_summary" in data["files"]["ep.srt"]


def test_validate_single_subtitle_file(client, sample_srt):
    data = client.post("/api/subtitles/validate", json={"file_name": "one.srt", "content": sample_srt}).get_json()

    assert list(data["files"]) == ["one.srt"]


def test_validate_subtitles_requires_files(client):
    assert client.post("/api/subtitles/validate", json={}).status_code == 400


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------

def test_document_job_runs_and_downloads(client):
    response = start_job(client, content="Hello", languages=["fr-FR", "de-DE"])

    assert response.status_code == 202
    job = response.get_json()
    assert job["state"] == "completed"
    assert job["ai_provider"] == "echo"
    assert job["result"]["outputs"] == {"fr-FR": {"text": "Hello"}, "de-DE": {"text": "Hello"}}
    assert job["progress"]["phase"] == "completed"

    status = client.get(f"/api/jobs/{job['job_id']}").get_json()
    assert status["state"] == "completed"

    download = client.get(f"/api/jobs/{job['job_id']}/download")
    assert download.get_data(as_text=True) == "[fr-FR]\nHello\n\n[de-DE]\nHello\n"


def test_job_uses_stored_glossary(client):
    client.put("/api/settings/glossary", json={"entries": [{"translations": {"en-US": "water", "fr-FR": "eau"}}]})

    job = start_job(client, documents=[{"name": "drink", "content": "water"}]).get_json()

    assert job["result"]["outputs"]["fr-FR"]["drink"] == "eau"


def test_subtitle_job_outputs_per_file(client, sample_srt):
    job = start_job(client, kind="subtitles", documents=[{"name": "ep.srt", "content": sample_srt}]).get_json()

    assert job["state"] == "completed"
    assert list(job["result"]["outputs"]["fr-FR"]) == ["ep_fr-FR.srt"]
    download = client.get(f"/api/jobs/{job['job_id']}/download?name=ep_fr-FR.srt")
    assert download.get_data(as_text=True).startswith("1\n00:00:01,000 --> 00:00:03,000\nHello <b>world</b>")


def test_subtitle_job_download_by_input_name(client, sample_srt):
    job = start_job(
        client, kind="subtitles", languages=["fr-FR", "de-DE"],
        documents=[{"name": "ep.srt", "content": sample_srt}],
    ).get_json()

    assert job["result"]["output_files"] == {
        "fr-FR": {"ep.srt": ["ep_fr-FR.srt"]},
        "de-DE": {"ep.srt": ["ep_de-DE.srt"]},
    }
    for url in (f"/api/jobs/{job['job_id']}/download", f"/api/jobs/{job['job_id']}/download?name=ep.srt"):
        download = client.get(url)
        assert download.status_code == 200
        text = download.get_data(as_text=True)
        assert text.startswith("[fr-FR]\n1\n00:00:01,000 --> 00:00:03,000")
        assert "[de-DE]\n1\n00:00:01,000" in text


def test_workbook_job_writes_language_columns(client, workbook_bytes):
    rows = [
        ["ID", "Row", "Type", "English", "French"],
        [1, 1, "title", "Hello", "Salut"],
        [2, 2, "body", "Goodbye", None],
    ]
    content = base64.b64encode(workbook_bytes(rows)).decode("ascii")

    job = start_job(
        client, kind="workbook", languages=["fr-FR", "de-DE"],
        documents=[{"name": "course.xlsx", "content": content}],
    ).get_json()

    assert job["state"] == "completed"
    assert job["result"]["outputs"]["de-DE"] == {"course.xlsx": {"2": "Hello", "3": "Goodbye"}}
    assert list(job["result"]["workbooks"]) == ["course_translated.xlsx"]

    for url in (f"/api/jobs/{job['job_id']}/download", f"/api/jobs/{job['job_id']}/download?name=course_translated.xlsx"):
        download = client.get(url)
        assert download.status_code == 200
        assert download.mimetype == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        sheet = openpyxl.load_workbook(io.BytesIO(download.get_data())).worksheets[0]
        assert [list(row) for row in sheet.iter_rows(values_only=True)] == [
            ["ID", "Row", "Type", "English", "French", "de-DE"],
            [1, 1, "title", "Hello", "Salut", "Hello"],
            [2, 2, "body", "Goodbye", "Goodbye", "Goodbye"],
        ]

    assert client.get(f"/api/jobs/{job['job_id']}/download?name=other.xlsx").status_code == 404


def test_workbook_job_overwrite_mode(client, workbook_bytes):
    rows = [["ID", "Row", "Type", "English", "French"], [1, 1, "title", "Hello", "Salut"]]
    content = base64.b64encode(workbook_bytes(rows)).decode("ascii")

    job = start_job(
        client, kind="workbook", overwrite_mode="overwrite",
        documents=[{"name": "course.xlsx", "content": content}],
    ).get_json()

    download = client.get(f"/api/jobs/{job['job_id']}/download")
    sheet = openpyxl.load_workbook(io.BytesIO(download.get_data())).worksheets[0]
    assert sheet["E2"].value == "Hello"


@pytest.mark.parametrize("document, overwrite_mode", [
    ({"name": "a.xlsx", "content": "%%%"}, "fill-empty"),
    ({"name": "a.xlsx", "content": base64.b64encode(b"ID,Row").decode("ascii")}, "fill-empty"),
    ({"name": "a.xlsx", "content": ""}, "keep"),
])
def test_invalid_workbook_jobs_are_rejected(client, document, overwrite_mode):
    response = start_job(client, kind="workbook", overwrite_mode=overwrite_mode, documents=[document])

    assert response.status_code == 400


@pytest.mark.parametrize("body", [
    {"content": "Hello", "languages": []},
    {"content": "Hello", "languages": ["xx-YY"]},
    {"content": "Hello", "languages": ["fr-FR"], "kind": "audio"},
    {"documents": [], "languages": ["fr-FR"]},
    {"documents": [{"name": "a", "content": "x"}, {"name": "a", "content": "y"}], "languages": ["fr-FR"]},
])
def test_invalid_jobs_are_rejected(client, body):
    assert client.post("/api/jobs/", json=body).status_code == 400


def test_job_with_unconfigured_provider_is_rejected(client):
    response = start_job(client, content="Hello", ai_provider="openai")

    assert response.status_code == 400
    assert response.get_json()["code"] == "ai_config_missing"


def test_finished_or_unknown_jobs_cannot_be_controlled(client):
    job = start_job(client, content="Hello").get_json()

    for action in ("pause", "resume", "cancel"):
        assert client.post(f"/api/jobs/{job['job_id']}/{action}").status_code == 409
        assert client.post(f"/api/jobs/missing/{action}").status_code == 409
    assert client.get("/api/jobs/missing").status_code == 404
    assert client.get("/api/jobs/missing/download").status_code == 404
    assert client.get(f"/api/jobs/{job['job_id']}/download?name=other").status_code == 404


def test_running_job_can_be_paused_resumed_and_cancelled():
    job = tasks.JobState(job_id="manual", state="running", controller=TranslationController())
    with tasks._jobs_lock:
        tasks._jobs[job.job_id] = job

    try:
        assert tasks.pause_job("manual")
        assert job.state == "paused"
        assert job.controller.paused
        assert not tasks.pause_job("unknown")

        assert tasks.resume_job("manual")
        assert job.state == "running"
        assert not tasks.resume_job("manual")

        assert tasks.cancel_job("manual")
        assert job.cancel_requested
        assert job.controller.cancelled
    finally:
        with tasks._jobs_lock:
            tasks._jobs.pop("manual", None)
