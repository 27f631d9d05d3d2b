"""Tests for the HTTP surface using FastAPI's TestClient."""

import asyncio
import json
import time

import httpx
import pytest
from fastapi.testclient import TestClient

from backend.config.settings import Settings
from web.main import create_app

XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class FakeOllama:
    """Scriptable stand-in for the backend behind httpx.MockTransport."""

    def __init__(self):
        self.reply = {"response": "ok"}
        self.models = {"models": [{"name": "qwen2.5:3b"}, {"name": "llama3:8b"}]}
        self.fail = False
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.fail:
            raise httpx.ConnectError("Connection refused", request=request)
        if request.url.path == "/api/tags":
            return httpx.Response(200, json=self.models)
        self.requests.append(json.loads(request.content))
        return httpx.Response(200, json=self.reply)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        data_dir=tmp_path / "data",
        public_dir=tmp_path / "public",
        max_upload_size=50_000,
        allowed_origins=["http://localhost:3000"],
    )


@pytest.fixture
def ollama():
    return FakeOllama()


@pytest.fixture
def client(settings, ollama):
    app = create_app(settings, transport=httpx.MockTransport(ollama))
    with TestClient(app) as test_client:
        yield test_client


class TestHealth:

    def test_connected(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "ollama": "connected"}

    def test_disconnected(self, client, ollama):
        ollama.fail = True

        response = client.get("/api/health")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "error"
        assert body["ollama"] == "disconnected"
        assert body["message"]


class TestModels:

    def test_list(self, client):
        response = client.get("/api/models")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "models": ["qwen2.5:3b", "llama3:8b"],
            "defaultModel": "qwen2.5:3b",
        }

    def test_backend_down(self, client, ollama):
        ollama.fail = True

        response = client.get("/api/models")

        assert response.status_code == 502
        assert response.json()["success"] is False


class TestProcessText:

    def test_success(self, client, ollama):
        ollama.reply = {"response": "A summary."}

        response = client.post("/api/process-text", json={
            "text": "Some long text.",
            "processingType": "summarize",
            "model": "llama3:8b",
        })

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "result": "A summary.",
            "inputLength": 15,
            "model": "llama3:8b",
        }
        assert ollama.requests[0]["model"] == "llama3:8b"
        assert ollama.requests[0]["stream"] is False

    def test_custom_prompt(self, client, ollama):
        client.post("/api/process-text", json={
            "text": "hey you",
            "processingType": "custom",
            "customPrompt": "Rewrite politely.",
        })

        assert ollama.requests[0]["prompt"] == "Rewrite politely.\n\nhey you"
        assert ollama.requests[0]["model"] == "qwen2.5:3b"

    @pytest.mark.parametrize("body", [{}, {"text": ""}, {"text": "   "}])
    def test_missing_text(self, client, ollama, body):
        response = client.post("/api/process-text", json=body)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "No text provided"}
        assert ollama.requests == []

    def test_backend_unreachable(self, client, ollama):
        ollama.fail = True

        response = client.post("/api/process-text", json={"text": "hi"})

        assert response.status_code == 503
        assert response.json()["success"] is False
        assert "connect" in response.json()["error"].lower()

    def test_backend_error_field(self, client, ollama):
        ollama.reply = {"error": "model 'nope' not found"}

        response = client.post("/api/process-text", json={"text": "hi", "model": "nope"})

        assert response.status_code == 502
        assert "model 'nope' not found" in response.json()["error"]


class TestBackendTimeout:

    def test_slow_backend_answers_504(self, tmp_path):
        async def never_answers(request):
            await asyncio.sleep(10)
            return httpx.Response(200, json={"response": "too late"})

        settings = Settings(
            data_dir=tmp_path / "data",
            public_dir=tmp_path / "public",
            request_timeout_s=0.2,
        )
        app = create_app(settings, transport=httpx.MockTransport(never_answers))

        with TestClient(app) as test_client:
            started = time.monotonic()
            response = test_client.post("/api/process-text", json={"text": "hello"})
            elapsed = time.monotonic() - started

        assert response.status_code == 504
        assert response.json()["success"] is False
        assert response.json()["error"]
        assert elapsed < 3.0


class TestProcessFile:

    def test_spreadsheet_download(self, client, ollama, settings, make_workbook):
        ollama.reply = {"response": (
            'Sure:\n[{"Module": "Battery", "Summarized Problem": "Drains fast.", "Severity": "High"}]\nDone.'
        )}
        content = make_workbook([["Title", "Problem"], ["battery", "drains"]])

        response = client.post(
            "/api/process",
            files={"file": ("bugs.xlsx", content, XLSX_TYPE)},
            data={"processingType": "issue_triage"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["rowCount"] == 1
        assert body["model"] == "qwen2.5:3b"
        assert body["downloadUrl"] == f"/downloads/{body['fileName']}"
        assert list(settings.upload_dir.iterdir()) == []

        download = client.get(body["downloadUrl"])
        assert download.status_code == 200
        assert download.content[:2] == b"PK"

    def test_json_output_format(self, client, ollama, make_workbook):
        ollama.reply = {"response": '[{"Module": "UI"}]'}

        response = client.post(
            "/api/process",
            files={"file": ("bugs.xlsx", make_workbook([["Title"], ["label cut"]]), XLSX_TYPE)},
            data={"processingType": "issue_triage", "outputFormat": "json"},
        )

        assert response.status_code == 200
        assert response.json()["fileName"].endswith("-bugs.json")
        rows = client.get(response.json()["downloadUrl"]).json()
        assert rows[0]["Module"] == "UI"

    def test_text_file(self, client, ollama):
        ollama.reply = {"response": "Key points."}

        response = client.post(
            "/api/process",
            files={"file": ("notes.txt", b"meeting notes", "text/plain")},
            data={"processingType": "extract"},
        )

        assert response.status_code == 200
        assert response.json()["result"] == "Key points."
        assert response.json()["inputLength"] == len("meeting notes")

    def test_text_field_without_file(self, client, ollama):
        ollama.reply = {"response": "done"}

        response = client.post("/api/process", data={"text": "plain text", "processingType": "raw"})

        assert response.status_code == 200
        assert ollama.requests[0]["prompt"] == "plain text"

    def test_no_input(self, client):
        response = client.post("/api/process", data={"processingType": "summarize"})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "No file or text provided"}

    def test_unsupported_extension(self, client, ollama):
        response = client.post(
            "/api/process",
            files={"file": ("manual.pdf", b"%PDF-1.4", "application/pdf")},
        )

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert ollama.requests == []

    def test_too_large(self, client, settings):
        response = client.post(
            "/api/process",
            files={"file": ("big.txt", b"x" * (settings.max_upload_size + 1), "text/plain")},
        )

        assert response.status_code == 413
        assert response.json()["success"] is False
        assert list(settings.upload_dir.iterdir()) == []

    def test_invalid_output_format(self, client, ollama, make_workbook):
        response = client.post(
            "/api/process",
            files={"file": ("bugs.xlsx", make_workbook([["Title"], ["a"]]), XLSX_TYPE)},
            data={"outputFormat": "csv"},
        )

        assert response.status_code == 400
        assert "Invalid output format" in response.json()["error"]
        assert ollama.requests == []

    def test_reply_without_array(self, client, ollama, settings, make_workbook):
        ollama.reply = {"response": "Sorry, I cannot classify these rows."}

        response = client.post(
            "/api/process",
            files={"file": ("bugs.xlsx", make_workbook([["Title"], ["a"]]), XLSX_TYPE)},
            data={"processingType": "issue_triage"},
        )

        assert response.status_code == 502
        assert response.json() == {
            "success": False,
            "error": "The model reply did not contain a usable JSON array.",
        }
        assert list(settings.upload_dir.iterdir()) == []
        assert list(settings.download_dir.iterdir()) == []


class TestCors:

    def test_allowed_origin(self, client):
        response = client.options(
            "/api/process-text",
            headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
        )

        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
