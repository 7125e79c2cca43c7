from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from casestudy.errors import RenderDownloadError, RenderSubmissionError
from casestudy.rendering import render_case_study_html
from casestudy.schema import CaseStudyDraft

logger = logging.getLogger("casestudy.pdf_export")

PDF_CONTENT_TYPE = "application/pdf"
PDF_OPTIONS: dict[str, object] = {
    "print_background": True,
    "format": "A4",
    "margin": {"top": "0cm", "bottom": "0cm", "left": "0cm", "right": "0cm"},
}
_FINISHED_OK = "success"
_FINISHED_FAILED = "failure"


@dataclass(frozen=True)
class RenderedDocument:
    content: bytes
    document_id: str | None = None
    content_type: str = PDF_CONTENT_TYPE


def _error_excerpt(response: httpx.Response, limit: int = 300) -> str:
    text = " ".join(response.text.split())
    return text[:limit]


class PdfExporter:
    """Submits HTML as a pending document, polls it, then downloads the presigned ``download_url``."""

    def __init__(
        self,
        client: httpx.Client,
        *,
        api_url: str,
        api_key: str,
        poll_interval_seconds: float,
        poll_max_attempts: int,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._api_url = api_url.rstrip("/")
        self._api_key = api_key
        self._poll_interval_seconds = max(0.0, poll_interval_seconds)
        self._poll_max_attempts = max(1, poll_max_attempts)
        self._sleep = sleep

    def export(self, draft: CaseStudyDraft) -> RenderedDocument:
        started = time.perf_counter()
        html = render_case_study_html(draft)
        document = self.submit(html)
        document_id = str(document.get("id") or "") or None
        download_url = self.await_download_url(document)
        content = self.download(download_url)
        logger.info(
            "pdf_export_completed",
            extra={
                "event": "pdf_export_completed",
                "document_id": document_id,
                "html_chars": len(html),
                "size_bytes": len(content),
                "results_count": len(draft.results),
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return RenderedDocument(content=content, document_id=document_id)

    def submit(self, html: str) -> dict[str, Any]:
        if not self._api_key:
            raise RenderSubmissionError("PDF_RENDER_API_KEY is not configured.", retryable=False)

        body = {
            "document": {
                "document_template_id": None,
                "html": html,
                "status": "pending",
                "_options": {"pdf_options": PDF_OPTIONS},
            }
        }
        try:
            response = self._client.post(f"{self._api_url}/documents", json=body, headers=self._auth_headers())
        except httpx.HTTPError as exc:
            raise RenderSubmissionError(f"Failed to submit the document for rendering: {exc}") from exc

        if response.status_code >= 400:
            logger.warning(
                "pdf_render_submit_failed",
                extra={
                    "event": "pdf_render_submit_failed",
                    "status_code": response.status_code,
                    "error": _error_excerpt(response),
                },
            )
            raise RenderSubmissionError(
                "Failed to generate PDF document.",
                details={"status_code": response.status_code},
            )

        document = self._document_from(response)
        if document is None or not document.get("id"):
            raise RenderSubmissionError("Rendering service response did not include a document handle.")
        return document

    def await_download_url(self, document: dict[str, Any]) -> str:
        document_id = str(document.get("id"))
        current = document
        for attempt in range(self._poll_max_attempts + 1):
            status = str(current.get("status") or "").strip().lower()
            download_url = str(current.get("download_url") or "").strip()
            if status == _FINISHED_FAILED:
                cause = str(current.get("failure_cause") or "unknown cause")
                raise RenderDownloadError(
                    f"Rendering service failed to generate the document: {cause}",
                    details={"document_id": document_id},
                )
            if download_url and status in {"", _FINISHED_OK}:
                return download_url
            if attempt == self._poll_max_attempts:
                break
            self._sleep(self._poll_interval_seconds)
            current = self._fetch_document(document_id)

        raise RenderDownloadError(
            f"Rendered document was not ready after {self._poll_max_attempts} status checks.",
            details={"document_id": document_id},
        )

    def download(self, download_url: str) -> bytes:
        try:
            response = self._client.get(download_url, follow_redirects=True)
        except httpx.HTTPError as exc:
            raise RenderDownloadError(f"Failed to download the generated PDF: {exc}") from exc
        if response.status_code >= 400:
            raise RenderDownloadError(
                "Failed to download the generated PDF.",
                details={"status_code": response.status_code},
            )
        if not response.content:
            raise RenderDownloadError("The generated PDF was empty.")
        return response.content

    def _fetch_document(self, document_id: str) -> dict[str, Any]:
        try:
            response = self._client.get(f"{self._api_url}/documents/{document_id}", headers=self._auth_headers())
        except httpx.HTTPError as exc:
            raise RenderDownloadError(f"Failed to check rendering status: {exc}") from exc
        if response.status_code >= 400:
            raise RenderDownloadError(
                "Failed to check rendering status.",
                details={"status_code": response.status_code, "document_id": document_id},
            )
        document = self._document_from(response)
        if document is None:
            raise RenderDownloadError("Rendering status response did not include a document.")
        return document

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    @staticmethod
    def _document_from(response: httpx.Response) -> dict[str, Any] | None:
        try:
            payload = response.json()
        except ValueError:
            return None
        if not isinstance(payload, dict):
            return None
        document = payload.get("document", payload)
        return document if isinstance(document, dict) else None
