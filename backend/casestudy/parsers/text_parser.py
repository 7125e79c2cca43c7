from __future__ import annotations

from pathlib import Path

from casestudy.parsers.base import DecodedTranscript


TEXT_FILE_EXTENSIONS = {
    ".txt",
    ".md",
    ".vtt",
    ".srt",
}


class TextTranscriptDecoder:
    decoder_id = "text"

    def supports(self, *, file_name: str, content_type: str) -> bool:
        if content_type.startswith("text/"):
            return True
        return Path(file_name).suffix.lower() in TEXT_FILE_EXTENSIONS

    def decode(self, *, content: bytes) -> DecodedTranscript:
        for encoding in ("utf-8-sig", "latin-1"):
            try:
                text = content.decode(encoding)
                break
            except UnicodeDecodeError:
                continue
        else:
            return DecodedTranscript(
                decoder_id=self.decoder_id,
                text="",
                error="text decode failed using utf-8 and latin-1",
            )

        return DecodedTranscript(decoder_id=self.decoder_id, text=text.replace("\r\n", "\n").strip())
