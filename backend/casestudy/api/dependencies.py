from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx
from fastapi import Request

from casestudy.completion import CompletionClient, build_completion_client
from casestudy.config import Settings
from casestudy.db import CaseRepository
from casestudy.generator import DraftGenerator
from casestudy.pdf_export import PdfExporter
from casestudy.storage import ObjectStore
from casestudy.transcripts import TranscriptFetcher

logger = logging.getLogger("casestudy.api")


@dataclass
class Services:
    settings: Settings
    cases: CaseRepository
    storage: ObjectStore
    generator: DraftGenerator
    exporter: PdfExporter
    completion: CompletionClient | None = None
    http_clients: list[httpx.Client] = field(default_factory=list)

    def close(self) -> None:
        for client in self.http_clients:
            client.close()
        if self.completion is not None:
            self.completion.close()


def build_services(settings: Settings) -> Services:
    timeout = httpx.Timeout(settings.http_timeout_seconds)
    transcript_client = httpx.Client(timeout=timeout)
    render_client = httpx.Client(timeout=timeout)

    cases = CaseRepository(settings.database_url)
    cases.init_db()
    completion = build_completion_client(settings)
    generator = DraftGenerator(
        cases=cases,
        transcripts=TranscriptFetcher(transcript_client, max_bytes=settings.max_transcript_bytes),
        completion=completion,
    )
    exporter = PdfExporter(
        render_client,
        api_url=settings.pdf_render_api_url,
        api_key=settings.pdf_render_api_key,
        poll_interval_seconds=settings.pdf_render_poll_interval_seconds,
        poll_max_attempts=settings.pdf_render_poll_max_attempts,
    )
    logger.info(
        "services_built",
        extra={
            "event": "services_built",
            "storage_backend": settings.storage_backend,
            "completion_backend": settings.completion_backend,
            "completion_model": completion.model_id,
        },
    )
    return Services(
        settings=settings,
        cases=cases,
        storage=ObjectStore(settings),
        generator=generator,
        exporter=exporter,
        completion=completion,
        http_clients=[transcript_client, render_client],
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
