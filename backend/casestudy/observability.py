from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import datetime, timezone
import json
import logging
import re
from typing import Any, Iterator, Mapping
from uuid import uuid4


_REQUEST_ID: ContextVar[str] = ContextVar("casestudy_request_id", default="-")
_REQUEST_ID_SHAPE = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]{0,127}")
_HANDLER_MARKER = "_casestudy_handler"

# httpx logs every request line at INFO, which would leak presigned transcript and PDF URLs.
_QUIET_LOGGERS = ("httpx", "httpcore", "botocore", "openai")

_SECRET_KEYS = frozenset(
    {
        "authorization",
        "cookie",
        "set_cookie",
        "apikey",
        "openai_api_key",
        "pdf_render_api_key",
        "email",
        "phone",
    }
)
_SECRET_KEY_PARTS = ("password", "secret", "token", "api_key", "access_key", "private_key", "x_amz_")

# Free text that never reaches a log line; only its length does.
_CONTENT_KEYS = frozenset({"transcript", "html", "draft_content", "draftcontent", "completion_text"})

_TEXT_REDACTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(?i)\bBearer\s+[A-Za-z0-9\-._~+/]+=*"), "Bearer [REDACTED]"),
    (re.compile(r"\bsk-[A-Za-z0-9_-]{16,}\b"), "[REDACTED_API_KEY]"),
    (re.compile(r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b"), "[REDACTED_AWS_ACCESS_KEY]"),
    (re.compile(r"(?i)([?&]X-Amz-(?:Signature|Credential|Security-Token)=)[^&\s]+"), r"\1[REDACTED]"),
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[REDACTED_EMAIL]"),
    (re.compile(r"\b(?:\+?1[-.\s]?)?(?:\(?\d{3}\)?[-.\s]?)\d{3}[-.\s]?\d{4}\b"), "[REDACTED_PHONE]"),
)


def normalize_request_id(candidate: str | None) -> str:
    """Accept a caller-supplied request id only if it is short and header-safe."""

    trimmed = (candidate or "").strip()
    if trimmed and _REQUEST_ID_SHAPE.fullmatch(trimmed):
        return trimmed
    return str(uuid4())


def set_request_id(request_id: str) -> Token[str]:
    return _REQUEST_ID.set(request_id)


def reset_request_id(token: Token[str]) -> None:
    _REQUEST_ID.reset(token)


def get_request_id() -> str:
    return _REQUEST_ID.get()


@contextmanager
def request_id_scope(request_id: str) -> Iterator[str]:
    token = set_request_id(request_id)
    try:
        yield request_id
    finally:
        reset_request_id(token)


def _classify_key(key: str) -> str | None:
    normalized = key.strip().lower().replace("-", "_")
    if normalized in _SECRET_KEYS or any(part in normalized for part in _SECRET_KEY_PARTS):
        return "secret"
    if normalized in _CONTENT_KEYS:
        return "content"
    return None


def _redact_text(value: str, *, max_length: int) -> str:
    for pattern, replacement in _TEXT_REDACTIONS:
        value = pattern.sub(replacement, value)
    if len(value) > max_length:
        return f"{value[:max_length]}...[truncated]"
    return value


def sanitize_for_logging(value: Any, *, max_string_length: int = 240) -> Any:
    """Return a copy of ``value`` that is safe to attach to a log record.

    Secret-looking keys are replaced with ``[REDACTED]``. Transcript, HTML and
    draft fields are reduced to their length. Strings are scrubbed of bearer
    tokens, API keys, presigned URL signatures, emails and phone numbers, then
    truncated.
    """

    if isinstance(value, Mapping):
        cleaned: dict[str, Any] = {}
        for key, item in value.items():
            key_text = str(key)
            kind = _classify_key(key_text)
            if kind == "secret":
                cleaned[key_text] = "[REDACTED]"
            elif kind == "content" and item is not None:
                cleaned[key_text] = f"[{len(str(item))} chars]"
            else:
                cleaned[key_text] = sanitize_for_logging(item, max_string_length=max_string_length)
        return cleaned
    if isinstance(value, (list, tuple, set)):
        return [sanitize_for_logging(item, max_string_length=max_string_length) for item in value]
    if isinstance(value, (bytes, bytearray)):
        return f"[{len(value)} bytes]"
    if isinstance(value, str):
        return _redact_text(value, max_length=max_string_length)
    return value


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line. ``extra=`` fields are sanitized before they are written."""

    _RESERVED = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime", "taskName", "request_id"}

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None) or get_request_id(),
        }
        extras = {key: value for key, value in record.__dict__.items() if key not in self._RESERVED}
        for key, value in extras.items():
            payload.setdefault(key, sanitize_for_logging({key: value})[key])

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(level_name: str) -> None:
    """Install the JSON handler on the root logger once; later calls only adjust the level."""

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name.upper(), logging.INFO))
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if any(getattr(handler, _HANDLER_MARKER, False) for handler in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIdFilter())
    setattr(handler, _HANDLER_MARKER, True)
    root.addHandler(handler)
