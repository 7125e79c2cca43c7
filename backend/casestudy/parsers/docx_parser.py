from __future__ import annotations

import io
from pathlib import Path

from docx import Document

from casestudy.parsers.base import DecodedTranscript


class DocxTranscriptDecoder:
    decoder_id = "docx"
    _CONTENT_TYPES = {
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }

    def supports(self, *, file_name: str, content_type: str) -> bool:
        if content_type.lower() in self._CONTENT_TYPES:
            return True
        return Path(file_name).suffix.lower() == ".docx"

    def decode(self, *, content: bytes) -> DecodedTranscript:
        try:
            document = Document(io.BytesIO(content))
        except Exception as exc:
            return DecodedTranscript(decoder_id=self.decoder_id, text="", error=f"docx parse failed: {exc}")

        lines: list[str] = []
        for paragraph in document.paragraphs:
            text = " ".join(paragraph.text.split()).strip()
            if text:
                lines.append(text)

        # Interview transcripts are often exported as speaker | utterance tables.
        for table in document.tables:
            for row in table.rows:
                cell_values = [" ".join(cell.text.split()).strip() for cell in row.cells]
                row_text = ": ".join([value for value in cell_values if value])
                if row_text:
                    lines.append(row_text)

        return DecodedTranscript(decoder_id=self.decoder_id, text="\n".join(lines).strip())
