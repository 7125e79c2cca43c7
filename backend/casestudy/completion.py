from __future__ import annotations

import logging
import re
import time
from typing import Any, Protocol

from openai import OpenAI, OpenAIError

from casestudy.config import Settings
from casestudy.errors import CompletionUnavailable, UpstreamFormatError
from casestudy.prompts import CompletionPrompt

logger = logging.getLogger("casestudy.completion")

_FENCED_JSON_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", flags=re.IGNORECASE | re.DOTALL)


class CompletionClient(Protocol):
    model_id: str

    def complete_json(self, prompt: CompletionPrompt) -> str:
        """Return the raw JSON text produced for ``prompt``."""
        ...

    def close(self) -> None:
        ...


def _log_completed(backend: str, model_id: str, prompt: CompletionPrompt, text: str, started: float) -> None:
    logger.info(
        "completion_completed",
        extra={
            "event": "completion_completed",
            "backend": backend,
            "model_id": model_id,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            "system_prompt_chars": len(prompt.system),
            "user_prompt_chars": len(prompt.user),
            "response_chars": len(text),
        },
    )


def _log_failed(backend: str, model_id: str, exc: Exception, started: float) -> None:
    logger.warning(
        "completion_failed",
        extra={
            "event": "completion_failed",
            "backend": backend,
            "model_id": model_id,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
    )


class OpenAICompletionClient:
    """Chat completions with ``response_format={"type": "json_object"}``."""

    backend = "openai"

    def __init__(self, settings: Settings, client: Any | None = None) -> None:
        self._settings = settings
        self.model_id = settings.openai_model
        if client is not None:
            self._client = client
        elif settings.openai_api_key:
            self._client = OpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url or None,
                timeout=settings.completion_timeout_seconds,
                max_retries=0,
            )
        else:
            self._client = None

    def complete_json(self, prompt: CompletionPrompt) -> str:
        if self._client is None:
            raise CompletionUnavailable("OPENAI_API_KEY is not configured.", retryable=False)

        started = time.perf_counter()
        try:
            response = self._client.chat.completions.create(
                model=self.model_id,
                messages=[
                    {"role": "system", "content": prompt.system},
                    {"role": "user", "content": prompt.user},
                ],
                response_format={"type": "json_object"},
                temperature=self._settings.completion_temperature,
                max_tokens=self._settings.completion_max_tokens,
            )
        except OpenAIError as exc:
            _log_failed(self.backend, self.model_id, exc, started)
            raise CompletionUnavailable(f"Completion request failed for model '{self.model_id}': {exc}") from exc

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content or not content.strip():
            raise UpstreamFormatError("The completion service returned an empty response.")

        _log_completed(self.backend, self.model_id, prompt, content, started)
        return content

    def close(self) -> None:
        if self._client is not None and hasattr(self._client, "close"):
            self._client.close()


class BedrockCompletionClient:
    """Bedrock Converse backend.

    Converse has no JSON output mode, so the system prompt carries the JSON-only
    instruction and a single surrounding markdown fence is stripped from the reply.
    """

    backend = "bedrock"

    def __init__(self, settings: Settings, client: Any | None = None) -> None:
        self._settings = settings
        self.model_id = settings.bedrock_model_id
        self._client = client or self._create_bedrock_client()

    def complete_json(self, prompt: CompletionPrompt) -> str:
        if not self.model_id:
            raise CompletionUnavailable("Bedrock model ID is not configured.", retryable=False)

        started = time.perf_counter()
        try:
            response = self._client.converse(
                modelId=self.model_id,
                system=[{"text": prompt.system}],
                messages=[{"role": "user", "content": [{"text": prompt.user}]}],
                inferenceConfig={
                    "temperature": self._settings.completion_temperature,
                    "maxTokens": self._settings.completion_max_tokens,
                },
            )
        except Exception as exc:  # pragma: no cover - exercised via runtime integration
            _log_failed(self.backend, self.model_id, exc, started)
            raise CompletionUnavailable(f"Bedrock invocation failed for model '{self.model_id}': {exc}") from exc

        text = self._strip_fence(self._extract_text(response))
        _log_completed(self.backend, self.model_id, prompt, text, started)
        return text

    def close(self) -> None:
        return None

    def _create_bedrock_client(self) -> Any:
        try:
            import boto3  # type: ignore
            from botocore.config import Config  # type: ignore
        except ImportError as exc:
            raise CompletionUnavailable("boto3 is required for the Bedrock completion backend.") from exc

        return boto3.client(
            "bedrock-runtime",
            region_name=self._settings.aws_region,
            config=Config(
                read_timeout=self._settings.completion_timeout_seconds,
                retries={"total_max_attempts": 1},
            ),
        )

    @staticmethod
    def _extract_text(response: Any) -> str:
        outputs = response.get("output", {}).get("message", {}).get("content", [])
        parts: list[str] = []
        for item in outputs:
            text = item.get("text")
            if isinstance(text, str) and text.strip():
                parts.append(text)
        if not parts:
            raise UpstreamFormatError("The completion service returned an empty response.")
        return "\n".join(parts).strip()

    @staticmethod
    def _strip_fence(text: str) -> str:
        fenced = _FENCED_JSON_PATTERN.match(text.strip())
        if fenced:
            return fenced.group(1)
        return text


def build_completion_client(settings: Settings) -> CompletionClient:
    backend = (settings.completion_backend or "").strip().lower()
    if backend == "openai":
        return OpenAICompletionClient(settings)
    if backend == "bedrock":
        return BedrockCompletionClient(settings)
    raise ValueError(f"Unsupported COMPLETION_BACKEND '{settings.completion_backend}'. Use 'openai' or 'bedrock'.")
