from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from casestudy.api.dependencies import Services, build_services
from casestudy.api.errors import install_exception_handlers
from casestudy.api.routers import cases, drafts, export, system
from casestudy.config import Settings, settings as default_settings
from casestudy.observability import configure_logging, normalize_request_id, request_id_scope, sanitize_for_logging

logger = logging.getLogger("casestudy.api")


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    settings = settings or (services.settings if services is not None else default_settings)
    cors_origins = settings.cors_origins_list
    if settings.cors_allow_credentials and any(origin == "*" for origin in cors_origins):
        raise RuntimeError("Invalid CORS_ORIGINS: wildcard '*' is not allowed when credentials are enabled.")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        logger.info("application_startup", extra={"event": "application_startup", "environment": settings.app_env})
        owns_services = getattr(app.state, "services", None) is None
        if owns_services:
            app.state.services = build_services(settings)
        try:
            yield
        finally:
            if owns_services:
                app.state.services.close()
                app.state.services = None
            logger.info("application_shutdown", extra={"event": "application_shutdown"})

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["Content-Type", settings.request_id_header],
        expose_headers=["Content-Disposition", settings.request_id_header],
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        request_id = normalize_request_id(request.headers.get(settings.request_id_header))
        request.state.request_id = request_id
        fields = {"request_id": request_id, "method": request.method, "path": request.url.path}
        started = time.perf_counter()

        with request_id_scope(request_id):
            logger.info(
                "request_started",
                extra={
                    "event": "request_started",
                    **fields,
                    "query": sanitize_for_logging(dict(request.query_params)),
                    "client_ip": request.client.host if request.client else None,
                },
            )
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(
                    "request_failed",
                    extra={"event": "request_failed", **fields, "duration_ms": _elapsed_ms(started)},
                )
                raise

            response.headers[settings.request_id_header] = request_id
            logger.info(
                "request_completed",
                extra={
                    "event": "request_completed",
                    **fields,
                    "status_code": response.status_code,
                    "duration_ms": _elapsed_ms(started),
                },
            )
            return response

    install_exception_handlers(app)
    app.include_router(system.router)
    app.include_router(cases.router)
    app.include_router(drafts.router)
    app.include_router(export.router)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("casestudy.main:app", host=default_settings.app_host, port=default_settings.app_port)
