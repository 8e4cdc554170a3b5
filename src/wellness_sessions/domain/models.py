"""Domain models for wellness sessions users."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class UserRecord:
    """Represents an authenticated author."""

    id: UUID
    email: str | None = None
