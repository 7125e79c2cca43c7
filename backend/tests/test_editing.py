from __future__ import annotations

import pytest

from casestudy.editing import FieldEdit, apply_edit, apply_edits
from casestudy.errors import DraftValidationError, InvalidInput
from casestudy.schema import validate_draft
from conftest import make_draft


def test_apply_edit_returns_new_snapshot_and_leaves_original_untouched() -> None:
    original = validate_draft(make_draft())

    updated = apply_edit(original, "customer.name", "Acme Corp")

    assert updated.customer.name == "Acme Corp"
    assert original.customer.name == "Customer X"
    assert updated.headline == original.headline


def test_apply_edit_addresses_result_entries_by_index() -> None:
    draft = validate_draft(make_draft(results_count=2))

    updated = apply_edit(draft, "results.1.metric", "2x Throughput")

    assert updated.results[1].metric == "2x Throughput"
    assert updated.results[0].metric == "10 Hours Saved"


def test_apply_edits_folds_edits_in_order() -> None:
    draft = validate_draft(make_draft())

    updated = apply_edits(
        draft,
        [
            FieldEdit(path="headline", value="First"),
            FieldEdit(path="headline", value="Second"),
            FieldEdit(path="quote", value="It just works."),
        ],
    )

    assert updated.headline == "Second"
    assert updated.quote == "It just works."


def test_apply_edit_rejects_blanking_a_required_field() -> None:
    draft = validate_draft(make_draft())

    with pytest.raises(DraftValidationError) as excinfo:
        apply_edit(draft, "challenge", "   ")

    assert excinfo.value.fields == ["challenge"]


def test_apply_edit_can_replace_results_but_not_beyond_three() -> None:
    draft = validate_draft(make_draft())
    four = [{"metric": str(index), "description": "x"} for index in range(4)]

    with pytest.raises(DraftValidationError):
        apply_edit(draft, "results", four)

    updated = apply_edit(draft, "results", four[:3])
    assert len(updated.results) == 3


@pytest.mark.parametrize("path", ["", "unknown", "customer.website", "results.5.metric", "results.x", "headline.text"])
def test_apply_edit_rejects_invalid_paths(path: str) -> None:
    draft = validate_draft(make_draft())
    with pytest.raises(InvalidInput):
        apply_edit(draft, path, "value")
