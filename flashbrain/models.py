"""
Domain records held by the flashbrain store.

Python attributes are snake_case; JSON uses the camelCase aliases the web
client expects (``categoryId``, ``createdAt`` ...).
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .constants import (
    DEFAULT_CARD_STYLE,
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_FOLDER_COLOR,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Record(BaseModel):
    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: int = Field(..., ge=1, description="Sequential id, never reused.")
    created_at: datetime = Field(
        default_factory=_utcnow,
        description="UTC timestamp when the record was created.",
    )


class Category(_Record):
    """
    Top-level grouping of folders.
    """

    name: str = Field(..., min_length=1)
    color: str = Field(default=DEFAULT_CATEGORY_COLOR, min_length=1)


class Folder(_Record):
    """
    A named collection of flashcards within a category.
    """

    name: str = Field(..., min_length=1)
    category_id: int = Field(..., ge=1, description="Owning Category id.")
    color: str = Field(default=DEFAULT_FOLDER_COLOR, min_length=1)


class Flashcard(_Record):
    """
    A question/answer pair with a visual style tag.
    """

    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    folder_id: int = Field(..., ge=1, description="Owning Folder id.")
    card_style: str = Field(default=DEFAULT_CARD_STYLE, min_length=1)


class StudySession(_Record):
    """
    Immutable summary of one completed study pass over a folder.
    """

    model_config = ConfigDict(frozen=True)

    folder_id: int = Field(..., ge=1)
    total_cards: int = Field(..., ge=0)
    completed_cards: int = Field(..., ge=0)
    duration: int = Field(..., ge=0, description="Session length in seconds.")
    accuracy: int = Field(
        ..., ge=0, le=100, description="Completed / total as a percentage."
    )

    @property
    def duration_minutes(self) -> int:
        """Whole minutes, as shown on the completion summary."""
        return self.duration // 60
