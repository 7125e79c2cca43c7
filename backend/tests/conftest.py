from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from casestudy.api.dependencies import Services
from casestudy.config import Settings
from casestudy.db import CaseRepository
from casestudy.generator import DraftGenerator
from casestudy.main import create_app
from casestudy.pdf_export import PdfExporter
from casestudy.prompts import CompletionPrompt
from casestudy.storage import ObjectStore
from casestudy.transcripts import TranscriptFetcher

RENDER_API_URL = "https://render.example.test/api/v1"
PDF_BYTES = b"%PDF-1.4\n% fake rendered case study\n%%EOF"
TRANSCRIPT_URL = "https://files.example.test/raw/interview.txt"
TRANSCRIPT_TEXT = "Customer X loved our product, saving 10 hours/week"


def make_draft(results_count: int = 1, **overrides: object) -> dict[str, object]:
    draft: dict[str, object] = {
        "headline": "Customer X Saves 10 Hours a Week",
        "customer": {"name": "Customer X", "description": "A regional logistics provider."},
        "challenge": "Manual reporting consumed a full day of every week.",
        "solution": "Automated dashboards replaced the weekly spreadsheet routine.",
        "results": [
            {"metric": f"{10 * (index + 1)} Hours Saved", "description": "per week"}
            for index in range(results_count)
        ],
        "quote": "We loved the product from day one.",
    }
    draft.update(overrides)
    return draft


class FakeCompletionClient:
    model_id = "fake-model"

    def __init__(self, *responses: object) -> None:
        self.responses = list(responses)
        self.calls: list[CompletionPrompt] = []
        self.closed = False

    def complete_json(self, prompt: CompletionPrompt) -> str:
        self.calls.append(prompt)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, str):
            return response
        return json.dumps(response)

    def close(self) -> None:
        self.closed = True


def transcript_handler(routes: dict[str, httpx.Response]) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        response = routes.get(str(request.url))
        if response is None:
            return httpx.Response(404, text="missing")
        return response

    return handler


class FakeRenderService:
    """PDFMonkey-shaped documents API: pending on submit, success on first status check."""

    def __init__(self, *, submit_status: int = 201, download_status: int = 200, final_status: str = "success") -> None:
        self.submit_status = submit_status
        self.download_status = download_status
        self.final_status = final_status
        self.submitted: list[dict[str, object]] = []
        self.status_checks = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if request.method == "POST" and url == f"{RENDER_API_URL}/documents":
            if self.submit_status >= 400:
                return httpx.Response(self.submit_status, json={"errors": [{"detail": "bad request"}]})
            self.submitted.append(json.loads(request.content))
            return httpx.Response(
                self.submit_status,
                json={"document": {"id": "doc-1", "status": "pending", "download_url": None}},
            )
        if request.method == "GET" and url == f"{RENDER_API_URL}/documents/doc-1":
            self.status_checks += 1
            document = {"id": "doc-1", "status": self.final_status, "download_url": None}
            if self.final_status == "success":
                document["download_url"] = "https://cdn.example.test/doc-1.pdf?X-Amz-Signature=abc"
            else:
                document["failure_cause"] = "template error"
            return httpx.Response(200, json={"document": document})
        if request.method == "GET" and url.startswith("https://cdn.example.test/doc-1.pdf"):
            if "authorization" in request.headers:
                return httpx.Response(400, text="presigned URLs reject extra credentials")
            if self.download_status >= 400:
                return httpx.Response(self.download_status, text="gone")
            return httpx.Response(200, content=PDF_BYTES, headers={"content-type": "application/pdf"})
        return httpx.Response(404)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path}/cases.db",
        storage_backend="local",
        storage_root=str(tmp_path / "uploads"),
        public_base_url="http://testserver",
        pdf_render_api_url=RENDER_API_URL,
        pdf_render_api_key="test-render-key",
        pdf_render_poll_interval_seconds=0,
        pdf_render_poll_max_attempts=3,
        openai_api_key="",
    )


@pytest.fixture
def completion() -> FakeCompletionClient:
    return FakeCompletionClient(make_draft())


@pytest.fixture
def transcript_routes() -> dict[str, httpx.Response]:
    return {
        TRANSCRIPT_URL: httpx.Response(200, text=TRANSCRIPT_TEXT, headers={"content-type": "text/plain"}),
    }


@pytest.fixture
def render_service() -> FakeRenderService:
    return FakeRenderService()


@pytest.fixture
def services(
    settings: Settings,
    completion: FakeCompletionClient,
    transcript_routes: dict[str, httpx.Response],
    render_service: FakeRenderService,
) -> Services:
    cases = CaseRepository(settings.database_url)
    cases.init_db()
    transcript_client = httpx.Client(transport=httpx.MockTransport(transcript_handler(transcript_routes)))
    render_client = httpx.Client(transport=httpx.MockTransport(render_service))
    generator = DraftGenerator(
        cases=cases,
        transcripts=TranscriptFetcher(transcript_client, max_bytes=settings.max_transcript_bytes),
        completion=completion,
    )
    exporter = PdfExporter(
        render_client,
        api_url=settings.pdf_render_api_url,
        api_key=settings.pdf_render_api_key,
        poll_interval_seconds=0,
        poll_max_attempts=settings.pdf_render_poll_max_attempts,
        sleep=lambda _: None,
    )
    built = Services(
        settings=settings,
        cases=cases,
        storage=ObjectStore(settings),
        generator=generator,
        exporter=exporter,
        completion=completion,
        http_clients=[transcript_client, render_client],
    )
    yield built
    built.close()


@pytest.fixture
def client(services: Services):
    app = create_app(services=services)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
