from __future__ import annotations

from casestudy.parsers.base import DecodedTranscript, TranscriptDecoder
from casestudy.parsers.docx_parser import DocxTranscriptDecoder
from casestudy.parsers.pdf_parser import PdfTranscriptDecoder
from casestudy.parsers.text_parser import TextTranscriptDecoder


class TranscriptDecoderRegistry:
    def __init__(self, decoders: list[TranscriptDecoder] | None = None) -> None:
        self._decoders = decoders or [
            PdfTranscriptDecoder(),
            DocxTranscriptDecoder(),
            TextTranscriptDecoder(),
        ]
        self._fallback = TextTranscriptDecoder()

    def decode(self, *, content: bytes, file_name: str, content_type: str) -> DecodedTranscript:
        for decoder in self._decoders:
            if decoder.supports(file_name=file_name, content_type=content_type):
                return decoder.decode(content=content)
        # Object stores frequently answer with application/octet-stream; treat unknown types as text.
        return self._fallback.decode(content=content)
