from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse, JSONResponse

from casestudy.api.contracts import CreateCaseRequest, SaveDraftRequest
from casestudy.api.dependencies import Services, get_services
from casestudy.db import CaseStoreError
from casestudy.errors import DraftValidationError, InvalidInput, NotFound, PersistenceError
from casestudy.schema import validate_draft
from casestudy.storage import LOCAL_ROUTE_PREFIX

logger = logging.getLogger("casestudy.api")

router = APIRouter()


def serialize_case_for_api(case: dict[str, object]) -> dict[str, object]:
    return {
        "id": case["id"],
        "raw_text_url": case["raw_text_url"],
        "status": case["status"],
        "draftContent": case.get("draft_content"),
        "created_at": case["created_at"],
        "updated_at": case["updated_at"],
    }


def _require_case(services: Services, case_id: str) -> dict[str, object]:
    try:
        case = services.cases.get_case(case_id)
    except CaseStoreError as exc:
        raise NotFound(f"Case '{case_id}' could not be fetched: {exc}") from exc
    if case is None:
        raise NotFound(f"Case '{case_id}' not found.", status_code=404)
    return case


@router.post("/api/uploads", status_code=201)
async def upload_transcript(
    file: UploadFile = File(...),
    services: Services = Depends(get_services),
) -> dict[str, object]:
    limit = services.settings.max_upload_file_bytes
    content = await file.read(limit + 1)
    stored = services.storage.save_transcript(
        file_name=file.filename or "upload.bin",
        content_type=file.content_type or "application/octet-stream",
        content=content,
    )
    return {"url": stored.url, "key": stored.key, "size_bytes": stored.size_bytes}


@router.get(LOCAL_ROUTE_PREFIX + "/{key:path}", response_model=None)
def download_upload(key: str, services: Services = Depends(get_services)) -> FileResponse:
    if services.storage.backend != "local":
        raise NotFound("Uploads are not served by this backend.", status_code=404)
    try:
        path = services.storage.local_path_for(key)
    except InvalidInput as exc:
        raise NotFound(f"Upload '{key}' not found.", status_code=404) from exc
    if not path.is_file():
        raise NotFound(f"Upload '{key}' not found.", status_code=404)
    return FileResponse(path)


@router.post("/api/create-case", status_code=201)
def create_case(payload: CreateCaseRequest, services: Services = Depends(get_services)) -> dict[str, str]:
    try:
        case = services.cases.create_case(payload.raw_text_url)
    except CaseStoreError as exc:
        raise PersistenceError("Failed to create case study in database.", step="create", details=str(exc)) from exc
    return {"id": str(case["id"])}


@router.get("/api/cases/{case_id}")
def get_case(case_id: str, services: Services = Depends(get_services)) -> dict[str, object]:
    return serialize_case_for_api(_require_case(services, case_id))


@router.put("/api/cases/{case_id}/draft", response_model=None)
def save_draft(
    case_id: str,
    payload: SaveDraftRequest,
    services: Services = Depends(get_services),
) -> JSONResponse:
    try:
        draft = validate_draft(payload.draft_content)
    except DraftValidationError as exc:
        raise InvalidInput(exc.message, details=exc.details) from exc

    _require_case(services, case_id)
    services.generator.save_draft(case_id, draft)
    logger.info("draft_saved", extra={"event": "draft_saved", "case_id": case_id})
    return JSONResponse(status_code=200, content={"success": True, "draftContent": draft.to_payload()})
