from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=2048)]
# Presigned S3 URLs signed with session credentials run well past 2 KB.
TranscriptUrl = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=16384)]


class CreateCaseRequest(BaseModel):
    raw_text_url: TranscriptUrl

    @field_validator("raw_text_url")
    @classmethod
    def _require_http_url(cls, value: str) -> str:
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError("raw_text_url must be an http(s) URL")
        return value


class GenerateDraftRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    case_id: RequiredText = Field(..., alias="caseId")
    template_id: RequiredText = Field(..., alias="templateId")


class SaveDraftRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    draft_content: dict[str, Any] = Field(..., alias="draftContent")


class FieldEditRequest(BaseModel):
    path: RequiredText
    value: Any


class EditDraftRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    draft_content: dict[str, Any] = Field(..., alias="draftContent")
    edits: list[FieldEditRequest] = Field(..., min_length=1, max_length=50)


class ExportPdfRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    case_id: str | None = Field(default=None, alias="caseId", max_length=128)
    draft_content: dict[str, Any] = Field(..., alias="draftContent")
