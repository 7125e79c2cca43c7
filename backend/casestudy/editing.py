from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Iterable

from casestudy.errors import InvalidInput
from casestudy.schema import CaseStudyDraft, validate_draft


@dataclass(frozen=True)
class FieldEdit:
    path: str
    value: object


def _split_path(path: str) -> list[str]:
    parts = [part.strip() for part in str(path or "").split(".")]
    if not parts or any(not part for part in parts):
        raise InvalidInput(f"Invalid field path '{path}'.", details={"path": path})
    return parts


def _descend(container: object, part: str, path: str) -> tuple[object, object]:
    if isinstance(container, dict):
        if part not in container:
            raise InvalidInput(f"Unknown field path '{path}'.", details={"path": path})
        return container, part
    if isinstance(container, list):
        try:
            index = int(part)
        except ValueError as exc:
            raise InvalidInput(f"Expected a list index in '{path}', got '{part}'.", details={"path": path}) from exc
        if index < 0 or index >= len(container):
            raise InvalidInput(f"Index {index} is out of range in '{path}'.", details={"path": path})
        return container, index
    raise InvalidInput(f"Field path '{path}' goes below a text value.", details={"path": path})


def apply_edit(draft: CaseStudyDraft, path: str, value: object) -> CaseStudyDraft:
    """Return a new draft with ``value`` written at ``path``.

    ``path`` is dotted (``headline``, ``customer.name``, ``results.1.metric``).
    The input snapshot is never modified and the result is re-validated, so an
    edit that blanks a required field fails instead of producing a bad draft.
    """

    parts = _split_path(path)
    payload = copy.deepcopy(draft.to_payload())

    current: object = payload
    for part in parts[:-1]:
        parent, key = _descend(current, part, path)
        current = parent[key]  # type: ignore[index]

    parent, key = _descend(current, parts[-1], path)
    parent[key] = copy.deepcopy(value)  # type: ignore[index]
    return validate_draft(payload)


def apply_edits(draft: CaseStudyDraft, edits: Iterable[FieldEdit]) -> CaseStudyDraft:
    updated = draft
    for edit in edits:
        updated = apply_edit(updated, edit.path, edit.value)
    return updated
