from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from casestudy.errors import CaseStudyError, InvalidInput, Unexpected

logger = logging.getLogger("casestudy.api")


def _field_name(loc: tuple[object, ...]) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] in {"body", "query", "path"}:
        parts = parts[1:]
    return ".".join(parts) or "body"


def invalid_input_from_validation(exc: RequestValidationError) -> InvalidInput:
    issues = exc.errors()
    if any(issue.get("type") == "json_invalid" for issue in issues):
        return InvalidInput("Request body must be valid JSON.")

    fields: list[str] = []
    details: list[dict[str, str]] = []
    for issue in issues:
        name = _field_name(tuple(issue.get("loc", ())))
        if name not in fields:
            fields.append(name)
        details.append({"field": name, "message": str(issue.get("msg", ""))})
    return InvalidInput(f"Missing or invalid field(s): {', '.join(fields)}.", details=details)


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CaseStudyError)
    async def case_study_error_handler(request: Request, exc: CaseStudyError) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "request_error",
            extra={
                "event": "request_error",
                "path": request.url.path,
                "status_code": exc.status_code,
                "error_code": exc.code,
                "step": exc.step,
                "error": exc.message,
            },
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = invalid_input_from_validation(exc)
        logger.warning(
            "request_invalid",
            extra={"event": "request_invalid", "path": request.url.path, "error": error.message},
        )
        return JSONResponse(status_code=error.status_code, content=error.to_payload())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail), "code": "http_error"},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "request_unexpected_error",
            extra={"event": "request_unexpected_error", "path": request.url.path},
            exc_info=exc,
        )
        error = Unexpected("An unexpected error occurred.")
        return JSONResponse(status_code=error.status_code, content=error.to_payload())
