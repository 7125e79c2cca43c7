from __future__ import annotations

import logging
import time
from pathlib import PurePosixPath
from urllib.parse import unquote, urlparse

import httpx

from casestudy.errors import SourceUnavailable
from casestudy.parsers import TranscriptDecoderRegistry

logger = logging.getLogger("casestudy.transcripts")


class TranscriptFetcher:
    """Downloads a transcript from its stored URL and decodes it to text."""

    def __init__(
        self,
        client: httpx.Client,
        *,
        max_bytes: int,
        decoders: TranscriptDecoderRegistry | None = None,
    ) -> None:
        self._client = client
        self._max_bytes = max_bytes
        self._decoders = decoders or TranscriptDecoderRegistry()

    def fetch_text(self, url: str) -> str:
        started = time.perf_counter()
        content, content_type = self._download(url)
        file_name = unquote(PurePosixPath(urlparse(url).path).name)
        decoded = self._decoders.decode(content=content, file_name=file_name, content_type=content_type)
        if not decoded.ok:
            raise SourceUnavailable(f"Transcript could not be read: {decoded.error or 'file is empty'}.")

        logger.info(
            "transcript_fetched",
            extra={
                "event": "transcript_fetched",
                "decoder": decoded.decoder_id,
                "size_bytes": len(content),
                "transcript_chars": len(decoded.text),
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return decoded.text

    def _download(self, url: str) -> tuple[bytes, str]:
        try:
            with self._client.stream("GET", url, follow_redirects=True) as response:
                if response.status_code >= 400:
                    raise SourceUnavailable(
                        f"Failed to download the transcript file (HTTP {response.status_code}).",
                        details={"status_code": response.status_code},
                    )
                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > self._max_bytes:
                    raise SourceUnavailable(f"Transcript exceeds max size of {self._max_bytes} bytes.")
                chunks: list[bytes] = []
                received = 0
                for chunk in response.iter_bytes():
                    received += len(chunk)
                    if received > self._max_bytes:
                        raise SourceUnavailable(f"Transcript exceeds max size of {self._max_bytes} bytes.")
                    chunks.append(chunk)
                content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as exc:
            logger.warning(
                "transcript_fetch_failed",
                extra={"event": "transcript_fetch_failed", "error": str(exc), "error_type": type(exc).__name__},
            )
            raise SourceUnavailable(f"Failed to download the transcript file: {exc}") from exc
        return b"".join(chunks), content_type
