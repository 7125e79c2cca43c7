from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from casestudy.schema import render_example_for_prompt, render_schema_for_prompt

_SYSTEM_PREAMBLE = (
    "You are an expert marketing copywriter specializing in B2B case studies. "
    "Your task is to analyze the provided transcript and extract the key information "
    "to structure it into a compelling case study.\n\n"
    "You MUST respond ONLY with a valid JSON object that strictly conforms to the JSON schema below. "
    "Do not include any conversational text, markdown formatting, or any other text outside of the "
    "single JSON object. Every text field must be non-empty. results must contain between 1 and 3 "
    "entries. The quote must come from the transcript."
)


@dataclass(frozen=True)
class CompletionPrompt:
    system: str
    user: str


@lru_cache(maxsize=1)
def build_system_prompt() -> str:
    return (
        f"{_SYSTEM_PREAMBLE}\n\n"
        f"JSON schema of the required output:\n{render_schema_for_prompt()}\n\n"
        f"Example of the required JSON output format:\n{render_example_for_prompt()}"
    )


def build_user_prompt(transcript: str) -> str:
    return f"Here is the transcript:\n\n---\n\n{transcript.strip()}"


def build_draft_prompt(transcript: str) -> CompletionPrompt:
    return CompletionPrompt(system=build_system_prompt(), user=build_user_prompt(transcript))
