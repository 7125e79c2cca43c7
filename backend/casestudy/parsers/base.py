from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class DecodedTranscript:
    decoder_id: str
    text: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.text.strip())


class TranscriptDecoder(Protocol):
    decoder_id: str

    def supports(self, *, file_name: str, content_type: str) -> bool:
        ...

    def decode(self, *, content: bytes) -> DecodedTranscript:
        ...
