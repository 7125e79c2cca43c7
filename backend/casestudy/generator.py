from __future__ import annotations

import json
import logging
import time

from casestudy.completion import CompletionClient
from casestudy.db import CaseRepository, CaseStoreError
from casestudy.errors import CaseStudyError, NotFound, PersistenceError, UpstreamFormatError
from casestudy.prompts import build_draft_prompt
from casestudy.schema import CaseStudyDraft, validate_draft
from casestudy.transcripts import TranscriptFetcher

logger = logging.getLogger("casestudy.generator")


def parse_completion_payload(raw: str) -> dict[str, object]:
    text = (raw or "").strip()
    if not text:
        raise UpstreamFormatError("The completion service returned an empty response.")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise UpstreamFormatError(
            "The completion service returned malformed JSON.",
            details={"position": exc.pos, "reason": exc.msg},
        ) from exc
    if not isinstance(payload, dict):
        raise UpstreamFormatError(
            "The completion service must return a JSON object.",
            details={"type": type(payload).__name__},
        )
    return payload


class DraftGenerator:
    # lookup -> fetch_transcript -> completion -> parse -> validate -> persist; no retries here.

    def __init__(
        self,
        *,
        cases: CaseRepository,
        transcripts: TranscriptFetcher,
        completion: CompletionClient,
    ) -> None:
        self._cases = cases
        self._transcripts = transcripts
        self._completion = completion

    def generate(self, case_id: str, *, template_id: str | None = None) -> CaseStudyDraft:
        started = time.perf_counter()
        log_context = {"case_id": case_id, "template_id": template_id}
        logger.info("draft_generation_started", extra={"event": "draft_generation_started", **log_context})

        try:
            case = self.lookup_case(case_id)
            transcript = self._transcripts.fetch_text(str(case["raw_text_url"]))
            raw = self._completion.complete_json(build_draft_prompt(transcript))
            payload = parse_completion_payload(raw)
            draft = validate_draft(payload)
            self.save_draft(case_id, draft)
        except CaseStudyError as exc:
            logger.warning(
                "draft_generation_failed",
                extra={
                    "event": "draft_generation_failed",
                    **log_context,
                    "step": exc.step,
                    "error_code": exc.code,
                    "error": exc.message,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )
            raise

        logger.info(
            "draft_generation_completed",
            extra={
                "event": "draft_generation_completed",
                **log_context,
                "results_count": len(draft.results),
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return draft

    def lookup_case(self, case_id: str) -> dict[str, object]:
        try:
            case = self._cases.get_case(case_id)
        except CaseStoreError as exc:
            raise NotFound(f"Case '{case_id}' could not be fetched: {exc}") from exc
        if case is None:
            raise NotFound(f"Case '{case_id}' not found.")
        return case

    def save_draft(self, case_id: str, draft: CaseStudyDraft) -> None:
        payload = draft.to_payload()
        try:
            updated = self._cases.update_draft_content(case_id, payload)
        except CaseStoreError as exc:
            raise PersistenceError(
                f"Failed to save the generated draft to the database. Reason: {exc}",
                draft=payload,
            ) from exc
        if not updated:
            raise PersistenceError(
                f"Failed to save the generated draft: case '{case_id}' no longer exists.",
                draft=payload,
                retryable=False,
            )
