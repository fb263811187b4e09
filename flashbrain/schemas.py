"""
Request and response DTOs for the REST surface, plus the validation helpers
shared by the API error handler and the terminal client.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .constants import DEFAULT_MAX_GENERATED_CARDS
from .models import Flashcard

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class _Payload(BaseModel):
    # Unknown keys are dropped, mirroring how the web client posts whole form
    # state.
    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class _PartialPayload(_Payload):
    """Base for update payloads: every field optional, but never null."""

    @model_validator(mode="after")
    def _reject_explicit_nulls(self):
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"'{name}' may be omitted but not null")
        return self

    def changes(self) -> Dict[str, Any]:
        """Only the fields the caller actually supplied."""
        return self.model_dump(exclude_unset=True)


# --- Categories ---


class CategoryCreate(_Payload):
    name: str = Field(..., min_length=1)
    color: Optional[str] = Field(default=None, min_length=1)


class CategoryUpdate(_PartialPayload):
    name: Optional[str] = Field(default=None, min_length=1)
    color: Optional[str] = Field(default=None, min_length=1)


# --- Folders ---


class FolderCreate(_Payload):
    name: str = Field(..., min_length=1)
    category_id: int = Field(..., ge=1)
    color: Optional[str] = Field(default=None, min_length=1)


class FolderUpdate(_PartialPayload):
    name: Optional[str] = Field(default=None, min_length=1)
    category_id: Optional[int] = Field(default=None, ge=1)
    color: Optional[str] = Field(default=None, min_length=1)


# --- Flashcards ---


class FlashcardCreate(_Payload):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    folder_id: int = Field(..., ge=1)
    card_style: Optional[str] = Field(default=None, min_length=1)


class FlashcardUpdate(_PartialPayload):
    question: Optional[str] = Field(default=None, min_length=1)
    answer: Optional[str] = Field(default=None, min_length=1)
    folder_id: Optional[int] = Field(default=None, ge=1)
    card_style: Optional[str] = Field(default=None, min_length=1)


# --- Study sessions ---


class StudySessionCreate(_Payload):
    folder_id: int = Field(..., ge=1)
    total_cards: int = Field(..., ge=0)
    completed_cards: int = Field(..., ge=0)
    duration: int = Field(..., ge=0)
    accuracy: int = Field(..., ge=0, le=100)

    @model_validator(mode="after")
    def _completed_within_total(self):
        if self.completed_cards > self.total_cards:
            raise ValueError("completedCards cannot exceed totalCards")
        return self


# --- AI generation ---


class GenerateRequest(_Payload):
    text: str = Field(..., min_length=1)
    folder_id: int = Field(..., ge=1)
    max_cards: int = Field(default=DEFAULT_MAX_GENERATED_CARDS, ge=1)


class GenerateResponse(BaseModel):
    message: str
    flashcards: List[Flashcard]


class GeneratedCard(BaseModel):
    """One item of the JSON array returned by the completion model."""

    model_config = ConfigDict(extra="ignore")

    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)


# --- Errors ---


class FieldError(BaseModel):
    field: str
    message: str
    type: str


class ErrorResponse(BaseModel):
    message: str
    errors: Optional[List[FieldError]] = None


def field_errors_from(
    raw_errors: Iterable[Mapping[str, Any]],
) -> List[FieldError]:
    """
    Flatten pydantic/FastAPI error dicts into FieldError entries.

    A leading "body" location segment (added by FastAPI) is dropped so that
    field names match the JSON keys the client sent.
    """
    result = []
    for err in raw_errors:
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] == "body":
            loc = loc[1:]
        result.append(
            FieldError(
                field=".".join(loc),
                message=str(err.get("msg", "")),
                type=str(err.get("type", "")),
            )
        )
    return result


def validate_payload(
    model_cls: Type[PayloadT], data: Any
) -> Union[PayloadT, List[FieldError]]:
    """Validate raw request data.

    Returns the typed payload, or the list of per-field errors.
    """
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        return field_errors_from(e.errors())
