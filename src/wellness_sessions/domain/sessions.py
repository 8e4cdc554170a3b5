"""Domain models for authored wellness sessions."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class SessionStatus(StrEnum):
    """Publication state of a session."""

    DRAFT = "draft"
    PUBLISHED = "published"


class Difficulty(StrEnum):
    """Difficulty level of a session."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class Category(StrEnum):
    """Kind of practice a session covers."""

    YOGA = "yoga"
    MEDITATION = "meditation"
    BREATHING = "breathing"
    MINDFULNESS = "mindfulness"
    OTHER = "other"


@dataclass(frozen=True)
class SessionRecord:
    """Represents a persisted wellness session."""

    id: UUID
    author_id: UUID
    title: str
    description: str
    tags: list[str]
    json_url: str | None
    content: object
    status: SessionStatus
    duration: float | None
    difficulty: Difficulty
    category: Category
    created_at: datetime
    updated_at: datetime
    last_saved: datetime
    author_email: str | None = None


@dataclass(frozen=True)
class SessionQuery:
    """Filter and pagination options for listing sessions."""

    status: SessionStatus | None = None
    category: Category | None = None
    tags: list[str] = field(default_factory=list)
    search: str | None = None
    author_id: UUID | None = None
    page: int = 1
    limit: int = 10
    order_by: str = "created_at"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class SessionPage:
    """One page of sessions plus totals."""

    items: list[SessionRecord]
    total: int
    page: int
    limit: int

    @property
    def page_count(self) -> int:
        """Number of pages needed to show every matching session."""
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)
