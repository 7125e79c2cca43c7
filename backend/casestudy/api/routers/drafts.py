from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from casestudy.api.contracts import EditDraftRequest, GenerateDraftRequest
from casestudy.api.dependencies import Services, get_services
from casestudy.catalog import is_known_template
from casestudy.editing import FieldEdit, apply_edits
from casestudy.errors import DraftValidationError, InvalidInput
from casestudy.schema import validate_draft

logger = logging.getLogger("casestudy.api")

router = APIRouter()


@router.post("/api/generate-draft")
def generate_draft(payload: GenerateDraftRequest, services: Services = Depends(get_services)) -> dict[str, object]:
    if not is_known_template(payload.template_id):
        logger.info(
            "unknown_template_requested",
            extra={"event": "unknown_template_requested", "template_id": payload.template_id},
        )
    draft = services.generator.generate(payload.case_id, template_id=payload.template_id)
    return {"success": True, "draftContent": draft.to_payload()}


@router.post("/api/edit-draft")
def edit_draft(payload: EditDraftRequest) -> dict[str, object]:
    try:
        draft = validate_draft(payload.draft_content)
    except DraftValidationError as exc:
        raise InvalidInput(exc.message, details=exc.details) from exc

    edits = [FieldEdit(path=item.path, value=item.value) for item in payload.edits]
    try:
        updated = apply_edits(draft, edits)
    except DraftValidationError as exc:
        raise InvalidInput(f"Edit rejected. {exc.message}", details=exc.details) from exc
    return {"draftContent": updated.to_payload()}
