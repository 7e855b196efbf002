"""Tests for the FastAPI conversion API (server/app.py).

WHY: Validates every endpoint: job submission with each way of choosing
a mapping, polling, download, cancellation, and the format and mapping
listings. Mapping problems must surface as 4xx responses at submit time.

HOW: FastAPI TestClient for synchronous in-process testing. Most tests
patch the background runner and set job state directly through the
store; the end-to-end tests let the real conversion run (TestClient
executes background tasks before returning the response).

RULES:
- All tests use the FastAPI TestClient (synchronous)
- config.MAPPINGS_DIR points at a per-test tmp folder
- The job store is cleared before and after each test
- Tests cover: happy paths, 404 not found, 409 conflict, 422 bad mapping
"""

from __future__ import annotations

import asyncio
import io
import json
import shutil
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from filemapper import __version__, config
from filemapper.server import app as app_module
from filemapper.server.app import _run_conversion, app, job_store
from filemapper.server.jobs import JobStatus

PEOPLE_MAPPING = {
    "name": "people",
    "sourceType": "csv",
    "targetType": "json",
    "expectedFileName": "people",
    "fileNameIsPrefix": True,
    "fieldMappings": [
        {"sourcePath": "id", "targetName": "PersonId"},
        {"sourcePath": "name", "targetName": "FullName"},
    ],
}

PEOPLE_CSV = b"id,name\n1,Ada\n2,Alan\n"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_job_store():
    """Clear all jobs before and after each test."""
    job_store._jobs.clear()
    yield
    for job in job_store.list_jobs():
        shutil.rmtree(job.work_dir, ignore_errors=True)
    job_store._jobs.clear()


@pytest.fixture(autouse=True)
def mappings_dir(tmp_path, monkeypatch):
    """A mappings folder holding people.map.json."""
    folder = tmp_path / "mappings"
    folder.mkdir()
    (folder / "people.map.json").write_text(json.dumps(PEOPLE_MAPPING), encoding="utf-8")
    monkeypatch.setattr(config, "MAPPINGS_DIR", str(folder))
    return folder


@pytest.fixture
def client():
    """TestClient with the background conversion disabled."""
    with patch("filemapper.server.app._run_conversion", new=lambda job_id, store: None):
        yield TestClient(app)


@pytest.fixture
def live_client():
    """TestClient that runs conversions for real."""
    return TestClient(app)


def _upload(name: str = "people_2024.csv", content: bytes = PEOPLE_CSV):
    return ("file", (name, io.BytesIO(content), "text/csv"))


# ---------------------------------------------------------------------------
# POST /conversions
# ---------------------------------------------------------------------------


class TestCreateConversion:
    def test_routed_by_file_name(self, client):
        resp = client.post("/conversions", files=[_upload()])
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "pending"
        assert body["mapping"] == "people"
        assert body["filename"] == "people_2024.csv"

    def test_saves_upload(self, client):
        resp = client.post("/conversions", files=[_upload()])
        job = job_store.get_job(resp.json()["id"])
        assert job.source_path.read_bytes() == PEOPLE_CSV

    def test_path_in_filename_stripped(self, client):
        resp = client.post("/conversions", files=[_upload("../../people.csv")])
        assert resp.status_code == 201
        assert resp.json()["filename"] == "people.csv"

    def test_named_mapping(self, client):
        resp = client.post("/conversions", files=[_upload("export.csv")], data={"mapping": "PEOPLE"})
        assert resp.status_code == 201
        assert resp.json()["mapping"] == "people"

    def test_unknown_mapping_name(self, client):
        resp = client.post("/conversions", files=[_upload()], data={"mapping": "invoices"})
        assert resp.status_code == 404
        assert "not found" in resp.json()["detail"].lower()

    def test_no_mapping_applies(self, client):
        resp = client.post("/conversions", files=[_upload("invoices.csv")])
        assert resp.status_code == 422

    def test_uploaded_mapping_document(self, client):
        document = dict(PEOPLE_MAPPING, name="adhoc", expectedFileName=None)
        resp = client.post("/conversions", files=[
            _upload("export.csv"),
            ("mapping_file", ("adhoc.map.json", io.BytesIO(json.dumps(document).encode()), "application/json")),
        ])
        assert resp.status_code == 201
        assert resp.json()["mapping"] == "adhoc"

    def test_invalid_mapping_document(self, client):
        resp = client.post("/conversions", files=[
            _upload(),
            ("mapping_file", ("bad.map.json", io.BytesIO(b'{"name": "x"}'), "application/json")),
        ])
        assert resp.status_code == 422

    def test_mapping_document_not_json(self, client):
        resp = client.post("/conversions", files=[
            _upload(),
            ("mapping_file", ("bad.map.json", io.BytesIO(b"{oops"), "application/json")),
        ])
        assert resp.status_code == 422
        assert "not valid JSON" in resp.json()["detail"]

    def test_mappings_folder_read_off_event_loop(self, client):
        loop_running = []
        original = app_module._available_mappings

        def recording():
            try:
                asyncio.get_running_loop()
                loop_running.append(True)
            except RuntimeError:
                loop_running.append(False)
            return original()

        with patch("filemapper.server.app._available_mappings", new=recording):
            assert client.post("/conversions", files=[_upload()]).status_code == 201
            assert client.get("/mappings").status_code == 200

        assert loop_running == [False, False]

    def test_too_many_jobs(self, client, monkeypatch):
        monkeypatch.setattr(job_store, "max_jobs", 0)
        resp = client.post("/conversions", files=[_upload()])
        assert resp.status_code == 429


# ---------------------------------------------------------------------------
# GET /conversions/{id} and /file
# ---------------------------------------------------------------------------


class TestGetConversion:
    def test_get_pending_job(self, client):
        job_id = client.post("/conversions", files=[_upload()]).json()["id"]
        resp = client.get("/conversions/{}".format(job_id))
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "pending"
        assert body["records"] == 0
        assert body["warnings"] == []

    def test_get_nonexistent_job(self, client):
        resp = client.get("/conversions/nonexistent-id-12345")
        assert resp.status_code == 404

    def test_failed_job_has_error(self, client):
        job_id = client.post("/conversions", files=[_upload()]).json()["id"]
        job_store.update_job(job_id, status=JobStatus.FAILED, error="line 2: unexpected end of data")

        body = client.get("/conversions/{}".format(job_id)).json()
        assert body["status"] == "failed"
        assert "unexpected end" in body["error"]

    def test_download_not_completed(self, client):
        job_id = client.post("/conversions", files=[_upload()]).json()["id"]
        resp = client.get("/conversions/{}/file".format(job_id))
        assert resp.status_code == 409

    def test_download_missing_job(self, client):
        assert client.get("/conversions/nope/file").status_code == 404


# ---------------------------------------------------------------------------
# DELETE /conversions/{id}
# ---------------------------------------------------------------------------


class TestDeleteConversion:
    def test_delete_job(self, client):
        job_id = client.post("/conversions", files=[_upload()]).json()["id"]
        job = job_store.get_job(job_id)

        resp = client.delete("/conversions/{}".format(job_id))

        assert resp.status_code == 204
        assert job.cancel_event.is_set()
        assert client.get("/conversions/{}".format(job_id)).status_code == 404

    def test_delete_nonexistent_job(self, client):
        assert client.delete("/conversions/nope").status_code == 404


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------


class TestConversionRun:
    def test_convert_and_download(self, live_client):
        job_id = live_client.post("/conversions", files=[_upload()]).json()["id"]

        body = live_client.get("/conversions/{}".format(job_id)).json()
        assert body["status"] == "completed"
        assert body["records"] == 2
        assert body["output_file"] == "people_2024.json"

        resp = live_client.get("/conversions/{}/file".format(job_id))
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/json")
        assert 'filename="people_2024.json"' in resp.headers["content-disposition"]
        assert resp.json() == [
            {"PersonId": "1", "FullName": "Ada"},
            {"PersonId": "2", "FullName": "Alan"},
        ]

    def test_parse_error_fails_job(self, live_client):
        job_id = live_client.post("/conversions", files=[_upload(content=b'id,name\n1,"open\n')]).json()["id"]

        body = live_client.get("/conversions/{}".format(job_id)).json()
        assert body["status"] == "failed"
        assert body["error"]

    def test_cancelled_job_records_cancelled(self, client):
        job_id = client.post("/conversions", files=[_upload()]).json()["id"]
        job = job_store.get_job(job_id)
        job.cancel_event.set()

        _run_conversion(job_id, job_store)

        assert job.status is JobStatus.CANCELLED
        assert not (job.work_dir / "people_2024.json").exists()

    def test_cancel_during_save_leaves_no_folder(self, client):
        job_id = client.post("/conversions", files=[_upload()]).json()["id"]
        job = job_store.get_job(job_id)

        def cancel_then_save(source, target, mapping, on_warning=None, cancel_event=None):
            job_store.cancel_job(job_id)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text("[]", encoding="utf-8")
            return 0

        with patch("filemapper.server.app.convert_file", new=cancel_then_save):
            _run_conversion(job_id, job_store)

        assert job_store.get_job(job_id) is None
        assert not job.work_dir.exists()

    def test_warnings_reported(self, client, mappings_dir):
        document = dict(PEOPLE_MAPPING, fieldMappings=[
            {"sourcePath": "id", "targetName": "Code",
             "transformation": {"type": "substring", "parameter1": "0", "parameter2": "-1"}},
        ])
        (mappings_dir / "people.map.json").write_text(json.dumps(document), encoding="utf-8")
        job_id = client.post("/conversions", files=[_upload()]).json()["id"]

        _run_conversion(job_id, job_store)

        body = client.get("/conversions/{}".format(job_id)).json()
        assert body["status"] == "completed"
        assert [w["record_index"] for w in body["warnings"]] == [0, 1]
        assert body["warnings"][0]["target_name"] == "Code"

    def test_run_for_missing_job_is_noop(self):
        _run_conversion("nope", job_store)


# ---------------------------------------------------------------------------
# Listings and health
# ---------------------------------------------------------------------------


class TestListings:
    def test_formats(self, client):
        resp = client.get("/formats")
        assert resp.status_code == 200
        formats = {f["key"]: f for f in resp.json()}
        assert set(formats) == {"json", "csv", "xml", "xlsx", "fixedwidth"}
        assert formats["xml"]["hierarchical"] is True
        assert formats["fixedwidth"]["extension"] == ".txt"

    def test_mappings(self, client):
        resp = client.get("/mappings")
        assert resp.json() == [{
            "name": "people",
            "source_type": "csv",
            "target_type": "json",
            "fields": 2,
            "expected_file_name": "people",
            "file_name_is_prefix": True,
        }]

    def test_mappings_folder_missing(self, client, monkeypatch, tmp_path):
        monkeypatch.setattr(config, "MAPPINGS_DIR", str(tmp_path / "none"))
        assert client.get("/mappings").json() == []

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.json() == {"status": "ok", "version": __version__}

    def test_openapi_schema_generates(self, client):
        schema = client.get("/openapi.json").json()
        assert schema["info"]["title"] == "FileMapper Conversion API"
        assert "/conversions/{job_id}/file" in schema["paths"]
