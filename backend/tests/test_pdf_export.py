from __future__ import annotations

import httpx
import pytest

from casestudy.errors import RenderDownloadError, RenderSubmissionError
from casestudy.pdf_export import PDF_CONTENT_TYPE, PdfExporter
from casestudy.rendering import render_case_study_html
from casestudy.schema import validate_draft

from conftest import PDF_BYTES, RENDER_API_URL, FakeRenderService, make_draft


def _exporter(service, *, api_key: str = "test-render-key", max_attempts: int = 3) -> PdfExporter:
    return PdfExporter(
        httpx.Client(transport=httpx.MockTransport(service)),
        api_url=RENDER_API_URL,
        api_key=api_key,
        poll_interval_seconds=0,
        poll_max_attempts=max_attempts,
        sleep=lambda _: None,
    )


@pytest.mark.parametrize("results_count", [1, 3])
def test_rendered_html_contains_every_field_and_result(results_count: int) -> None:
    draft = validate_draft(make_draft(results_count=results_count))
    html = render_case_study_html(draft)

    assert draft.headline in html
    assert draft.customer.name in html
    assert draft.customer.description in html
    assert draft.challenge in html
    assert draft.solution in html
    assert draft.quote in html
    assert html.count('class="result-metric"') == results_count
    for result in draft.results:
        assert result.metric in html


def test_rendered_html_escapes_markup_from_draft_text() -> None:
    draft = validate_draft(make_draft(headline="<script>alert('x')</script> & more"))
    html = render_case_study_html(draft)
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


@pytest.mark.parametrize("results_count", [1, 3])
def test_export_submits_html_polls_and_downloads_without_credentials(results_count: int) -> None:
    service = FakeRenderService()
    document = _exporter(service).export(validate_draft(make_draft(results_count=results_count)))

    assert document.content == PDF_BYTES
    assert document.content_type == PDF_CONTENT_TYPE
    assert document.document_id == "doc-1"
    assert service.status_checks == 1

    submitted = service.submitted[0]["document"]
    assert submitted["status"] == "pending"
    assert "Customer X Saves 10 Hours a Week" in submitted["html"]
    assert submitted["html"].count('class="result-metric"') == results_count
    pdf_options = submitted["_options"]["pdf_options"]
    assert pdf_options["format"] == "A4"
    assert pdf_options["margin"] == {"top": "0cm", "bottom": "0cm", "left": "0cm", "right": "0cm"}


def test_submit_sends_bearer_token() -> None:
    seen: list[httpx.Request] = []
    service = FakeRenderService()

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return service(request)

    _exporter(handler).submit("<html></html>")
    assert seen[0].headers["authorization"] == "Bearer test-render-key"


def test_submit_rejection_is_render_submission_error() -> None:
    with pytest.raises(RenderSubmissionError) as excinfo:
        _exporter(FakeRenderService(submit_status=422)).export(validate_draft(make_draft()))
    assert excinfo.value.step == "render_submit"
    assert excinfo.value.details == {"status_code": 422}


def test_missing_api_key_fails_before_any_request() -> None:
    service = FakeRenderService()
    with pytest.raises(RenderSubmissionError) as excinfo:
        _exporter(service, api_key="").export(validate_draft(make_draft()))
    assert excinfo.value.retryable is False
    assert service.submitted == []


def test_render_failure_status_is_download_error() -> None:
    with pytest.raises(RenderDownloadError, match="template error"):
        _exporter(FakeRenderService(final_status="failure")).export(validate_draft(make_draft()))


def test_download_rejection_is_download_error() -> None:
    with pytest.raises(RenderDownloadError) as excinfo:
        _exporter(FakeRenderService(download_status=403)).export(validate_draft(make_draft()))
    assert excinfo.value.step == "render_download"


def test_document_never_ready_gives_up_after_max_attempts() -> None:
    service = FakeRenderService(final_status="generating")
    with pytest.raises(RenderDownloadError, match="not ready"):
        _exporter(service, max_attempts=2).export(validate_draft(make_draft()))
    assert service.status_checks == 2


def test_submission_with_download_url_skips_polling() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(f"{request.method} {request.url}")
        if request.method == "POST":
            return httpx.Response(
                201,
                json={"id": "doc-9", "status": "success", "download_url": "https://cdn.example.test/doc-9.pdf"},
            )
        return httpx.Response(200, content=PDF_BYTES)

    document = _exporter(handler).export(validate_draft(make_draft()))
    assert document.content == PDF_BYTES
    assert calls == [f"POST {RENDER_API_URL}/documents", "GET https://cdn.example.test/doc-9.pdf"]
