from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from casestudy.api.dependencies import Services, get_services
from casestudy.catalog import list_templates


router = APIRouter()


def _database_backend_label(database_url: str) -> str:
    url = (database_url or "").strip().lower()
    if url.startswith("sqlite:///"):
        return "sqlite"
    return "unknown"


@router.get("/")
def root() -> dict[str, str]:
    return {"service": "casestudy-backend", "status": "running"}


@router.get("/health")
def health(services: Services = Depends(get_services)) -> dict[str, str]:
    return {"status": "ok", "environment": services.settings.app_env}


@router.get("/ready", response_model=None)
def ready(services: Services = Depends(get_services)) -> JSONResponse:
    settings = services.settings
    payload: dict[str, object] = {
        "status": "ready",
        "environment": settings.app_env,
        "checks": {},
    }
    checks: dict[str, object] = payload["checks"]  # type: ignore[assignment]

    try:
        services.cases.ping()
        checks["db"] = {"ok": True, "backend": _database_backend_label(settings.database_url)}
    except Exception as exc:
        payload["status"] = "not_ready"
        checks["db"] = {"ok": False, "backend": _database_backend_label(settings.database_url), "error": str(exc)}

    try:
        services.storage.ping()
        checks["storage"] = {"ok": True, "backend": services.storage.backend}
    except Exception as exc:
        payload["status"] = "not_ready"
        checks["storage"] = {"ok": False, "backend": services.storage.backend, "error": str(exc)}

    checks["completion"] = {
        "ok": True,
        "backend": settings.completion_backend,
        "configured": bool(settings.openai_api_key) if settings.completion_backend == "openai" else True,
    }
    checks["pdf_render"] = {"ok": True, "configured": bool(settings.pdf_render_api_key)}

    return JSONResponse(status_code=200 if payload["status"] == "ready" else 503, content=payload)


@router.get("/api/templates")
def templates() -> dict[str, object]:
    return {"templates": list_templates()}
