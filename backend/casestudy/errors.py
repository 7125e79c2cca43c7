from __future__ import annotations

from typing import Any


class CaseStudyError(Exception):
    code = "unexpected"
    status_code = 500
    default_step: str | None = None
    default_retryable: bool | None = None

    def __init__(
        self,
        message: str,
        *,
        step: str | None = None,
        retryable: bool | None = None,
        details: Any = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.step = step if step is not None else self.default_step
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"error": self.message, "code": self.code}
        if self.step is not None:
            payload["step"] = self.step
        if self.retryable is not None:
            payload["retryable"] = self.retryable
        if self.details is not None:
            payload["details"] = self.details
        return payload


class InvalidInput(CaseStudyError):
    code = "invalid_input"
    status_code = 400


class NotFound(CaseStudyError):
    code = "not_found"
    default_step = "lookup"


class SourceUnavailable(CaseStudyError):
    code = "source_unavailable"
    default_step = "fetch_transcript"
    default_retryable = True


class CompletionUnavailable(CaseStudyError):
    code = "completion_unavailable"
    default_step = "completion"
    default_retryable = True


class UpstreamFormatError(CaseStudyError):
    code = "upstream_format_error"
    default_step = "parse"
    default_retryable = True


class DraftValidationError(CaseStudyError):
    code = "validation_error"
    default_step = "validate"
    default_retryable = True

    def __init__(self, message: str, *, fields: list[str], **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.fields = fields

    def to_payload(self) -> dict[str, object]:
        payload = super().to_payload()
        payload["fields"] = list(self.fields)
        return payload


class PersistenceError(CaseStudyError):
    # ``draft`` is the validated payload that was not saved.
    code = "persistence_error"
    default_step = "persist"
    default_retryable = True

    def __init__(self, message: str, *, draft: dict[str, object] | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.draft = draft

    def to_payload(self) -> dict[str, object]:
        payload = super().to_payload()
        if self.draft is not None:
            payload["draftContent"] = self.draft
        return payload


class StorageError(CaseStudyError):
    code = "storage_error"
    default_step = "upload"


class RenderSubmissionError(CaseStudyError):
    code = "render_submission_error"
    default_step = "render_submit"
    default_retryable = True


class RenderDownloadError(CaseStudyError):
    code = "render_download_error"
    default_step = "render_download"
    default_retryable = True


class Unexpected(CaseStudyError):
    code = "unexpected"
