from __future__ import annotations

import io
from pathlib import Path

from pypdf import PdfReader

from casestudy.parsers.base import DecodedTranscript


class PdfTranscriptDecoder:
    decoder_id = "pdf"

    def supports(self, *, file_name: str, content_type: str) -> bool:
        if content_type.lower() == "application/pdf":
            return True
        return Path(file_name).suffix.lower() == ".pdf"

    def decode(self, *, content: bytes) -> DecodedTranscript:
        try:
            reader = PdfReader(io.BytesIO(content), strict=False)
            pages = [" ".join((page.extract_text() or "").split()) for page in reader.pages]
        except Exception as exc:
            return DecodedTranscript(decoder_id=self.decoder_id, text="", error=f"pdf parse failed: {exc}")

        text = "\n\n".join(page for page in pages if page)
        if not text:
            return DecodedTranscript(
                decoder_id=self.decoder_id,
                text="",
                error="pdf contains no extractable text",
            )
        return DecodedTranscript(decoder_id=self.decoder_id, text=text)
