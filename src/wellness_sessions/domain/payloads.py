"""Validated payloads accepted by the session store."""

import re
from typing import TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    JsonValue,
    ValidationError,
    field_validator,
)

from wellness_sessions.domain.sessions import Category, Difficulty, SessionStatus
from wellness_sessions.errors import FieldError, SessionValidationError

_URL_PATTERN = re.compile(r"^https?://\S+$")
_NULLABLE_FIELDS = {"json_url", "duration"}

ModelT = TypeVar("ModelT", bound="_SessionFields")


class _SessionFields(BaseModel):
    """Field rules shared by every session payload."""

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    @field_validator("tags", mode="before", check_fields=False)
    @classmethod
    def _normalize_tags(cls, value: object) -> object:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("Tags must be an array")
        tags = []
        for tag in value:
            if not isinstance(tag, str):
                raise ValueError("Tags must be strings")
            cleaned = tag.strip().lower()
            if cleaned:
                tags.append(cleaned)
        return tags

    @field_validator("json_url", mode="before", check_fields=False)
    @classmethod
    def _validate_json_url(cls, value: object) -> object:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("Please enter a valid URL")
        cleaned = value.strip()
        if not cleaned:
            return None
        if not _URL_PATTERN.match(cleaned):
            raise ValueError("Please enter a valid URL")
        return cleaned

    @field_validator("content", mode="before", check_fields=False)
    @classmethod
    def _default_content(cls, value: object) -> object:
        return {} if value is None else value


class SessionCreate(_SessionFields):
    """Payload for creating a session."""

    title: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    tags: list[str] = Field(default_factory=list)
    json_url: str | None = Field(default=None, alias="jsonUrl")
    content: JsonValue = Field(default_factory=dict)
    status: SessionStatus = SessionStatus.DRAFT
    duration: float | None = Field(default=None, ge=0)
    difficulty: Difficulty = Difficulty.BEGINNER
    category: Category = Category.OTHER


class SessionUpdate(_SessionFields):
    """Payload for a full update; unset fields keep their stored value."""

    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    tags: list[str] | None = None
    json_url: str | None = Field(default=None, alias="jsonUrl")
    content: JsonValue = None
    status: SessionStatus | None = None
    duration: float | None = Field(default=None, ge=0)
    difficulty: Difficulty | None = None
    category: Category | None = None


class SessionAutoSave(_SessionFields):
    """Payload for the auto-save channel."""

    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    tags: list[str] | None = None
    json_url: str | None = Field(default=None, alias="jsonUrl")
    content: JsonValue = None


def parse_payload(model: type[ModelT], payload: dict[str, object]) -> ModelT:
    """Validate a raw payload, raising the store's validation error."""
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise SessionValidationError(
            [
                FieldError(field=_field_name(error["loc"]), message=error["msg"])
                for error in exc.errors()
            ]
        ) from exc


def _field_name(loc: tuple[int | str, ...]) -> str:
    if not loc:
        return "body"
    return str(loc[0])


def changed_fields(model: BaseModel) -> dict[str, object]:
    """Return explicitly provided fields keyed by attribute name.

    Explicit nulls are dropped for fields that cannot be cleared.
    """
    values = model.model_dump(exclude_unset=True, mode="json")
    return {
        key: value
        for key, value in values.items()
        if value is not None or key in _NULLABLE_FIELDS
    }
