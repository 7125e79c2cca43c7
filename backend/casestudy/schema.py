from __future__ import annotations

import json
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError

from casestudy.errors import DraftValidationError

MIN_RESULTS = 1
MAX_RESULTS = 3

NonEmptyText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class CustomerProfile(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: NonEmptyText = Field(..., description="The name of the customer or company.")
    description: NonEmptyText = Field(..., description="A brief, one-sentence description of the customer.")


class ResultHighlight(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    metric: NonEmptyText = Field(..., description="The key result, e.g. '40% Increase' or '50 Hours Saved'.")
    description: NonEmptyText = Field(..., description="A short sentence explaining the result.")


class CaseStudyDraft(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    headline: NonEmptyText = Field(..., description="A compelling, attention-grabbing headline for the case study.")
    customer: CustomerProfile
    challenge: NonEmptyText = Field(
        ..., description="A 2-3 sentence paragraph describing the main problem the customer was facing."
    )
    solution: NonEmptyText = Field(
        ..., description="A 2-3 sentence paragraph explaining how the product or service solved the challenge."
    )
    results: list[ResultHighlight] = Field(
        ...,
        min_length=MIN_RESULTS,
        max_length=MAX_RESULTS,
        description="A list of 1 to 3 key, quantifiable results.",
    )
    quote: NonEmptyText = Field(
        ..., description="A powerful, impactful quote from the customer found within the transcript."
    )

    def to_payload(self) -> dict[str, object]:
        return self.model_dump(mode="json")


EXAMPLE_DRAFT: dict[str, object] = {
    "headline": "Innovatech Boosts Design Velocity by 40% with PixelPerfect",
    "customer": {
        "name": "Innovatech",
        "description": "A leading provider of enterprise software solutions.",
    },
    "challenge": (
        "The design team was struggling with a chaotic feedback process across multiple platforms, "
        "leading to significant delays."
    ),
    "solution": (
        "By implementing PixelPerfect's centralized dashboard, all feedback and approvals were streamlined "
        "into a single, efficient workflow."
    ),
    "results": [
        {"metric": "40% Reduction", "description": "in design approval times."},
        {"metric": "80% Decrease", "description": "in weekly administrative tasks for designers."},
    ],
    "quote": "PixelPerfect gave us our sanity back.",
}


def draft_json_schema() -> dict[str, object]:
    return CaseStudyDraft.model_json_schema()


def render_schema_for_prompt() -> str:
    return json.dumps(draft_json_schema(), indent=2, ensure_ascii=True)


def render_example_for_prompt() -> str:
    return json.dumps(EXAMPLE_DRAFT, indent=2, ensure_ascii=True)


def _field_path(loc: tuple[object, ...]) -> str:
    return ".".join(str(part) for part in loc) or "$"


def validate_draft(payload: object) -> CaseStudyDraft:
    """Validate ``payload`` against the draft schema.

    Surrounding whitespace is stripped from text fields; nothing else is repaired.
    A payload with four results fails rather than losing one. Raises
    ``DraftValidationError`` listing every violated field path.
    """

    if isinstance(payload, CaseStudyDraft):
        return payload
    if not isinstance(payload, dict):
        raise DraftValidationError(
            "Draft content must be a JSON object.",
            fields=["$"],
            details=[{"field": "$", "message": f"expected object, got {type(payload).__name__}"}],
        )

    try:
        return CaseStudyDraft.model_validate(payload)
    except ValidationError as err:
        issues = err.errors(include_url=False)

    fields: list[str] = []
    details: list[dict[str, str]] = []
    for issue in issues:
        path = _field_path(tuple(issue.get("loc", ())))
        if path not in fields:
            fields.append(path)
        details.append({"field": path, "message": str(issue.get("msg", "")), "type": str(issue.get("type", ""))})

    raise DraftValidationError(
        f"Draft content failed schema validation: {', '.join(fields)}.",
        fields=fields,
        details=details,
    )
