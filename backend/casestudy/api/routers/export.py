from __future__ import annotations

import re

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from casestudy.api.contracts import ExportPdfRequest
from casestudy.api.dependencies import Services, get_services
from casestudy.errors import DraftValidationError, InvalidInput
from casestudy.schema import validate_draft

router = APIRouter()

_FILENAME_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def export_filename(case_id: str | None) -> str:
    cleaned = _FILENAME_UNSAFE.sub("", case_id or "")
    if not cleaned:
        return "case-study.pdf"
    return f"case-study-{cleaned}.pdf"


@router.post("/api/export-pdf", response_model=None)
def export_pdf(payload: ExportPdfRequest, services: Services = Depends(get_services)) -> Response:
    try:
        draft = validate_draft(payload.draft_content)
    except DraftValidationError as exc:
        raise InvalidInput(f"Invalid draft content. {exc.message}", details=exc.details) from exc

    document = services.exporter.export(draft)
    return Response(
        content=document.content,
        media_type=document.content_type,
        headers={"Content-Disposition": f'attachment; filename="{export_filename(payload.case_id)}"'},
    )
