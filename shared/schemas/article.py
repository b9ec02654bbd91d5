from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator

GENERIC_FAILURE = "archiving failed"


class ArticleStatus(str, Enum):
    PENDING = "pending"
    ARCHIVED = "archived"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({ArticleStatus.ARCHIVED, ArticleStatus.FAILED})


class InvalidStatusTransition(ValueError):
    """Raised when a status change would leave a terminal state."""

    def __init__(self, current: ArticleStatus, requested: ArticleStatus):
        self.current = current
        self.requested = requested
        super().__init__(f"cannot move article from {current.value} to {requested.value}")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Article(BaseModel):
    """A web page to archive: the unit of work and the stored result."""

    id: UUID = Field(default_factory=uuid4, description="Join key between metadata and content")
    url: str = Field(..., description="Source locator")
    title: str = Field("", description="Extracted title")
    excerpt: str = Field("", description="Short extracted summary")
    content: str = Field("", description="Cleaned article HTML, kept in the cold store only")
    status: ArticleStatus = Field(ArticleStatus.PENDING, description="Job state")
    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp")
    archived_at: Optional[datetime] = Field(None, description="Set on the transition into archived")
    error_message: str = Field("", description="Set on the transition into failed")

    @model_validator(mode="after")
    def check_outcome_fields(self):
        if self.status == ArticleStatus.PENDING:
            if self.archived_at is not None or self.error_message:
                raise ValueError("a pending article has neither archived_at nor error_message")
        elif self.status == ArticleStatus.ARCHIVED:
            if self.archived_at is None or self.error_message:
                raise ValueError("an archived article needs archived_at and no error_message")
        elif not self.error_message or self.archived_at is not None:
            raise ValueError("a failed article needs error_message and no archived_at")
        return self

    @classmethod
    def create(cls, url: str) -> "Article":
        """New pending article for ``url``."""
        return cls(url=url)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def mark_archived(self, title: str, excerpt: str, content: str, at: Optional[datetime] = None) -> None:
        if self.is_terminal:
            raise InvalidStatusTransition(self.status, ArticleStatus.ARCHIVED)
        self.title = title or ""
        self.excerpt = excerpt or ""
        self.content = content or ""
        self.status = ArticleStatus.ARCHIVED
        self.archived_at = at or utcnow()

    def mark_failed(self, message: str) -> None:
        if self.is_terminal:
            raise InvalidStatusTransition(self.status, ArticleStatus.FAILED)
        self.status = ArticleStatus.FAILED
        self.error_message = message or GENERIC_FAILURE
        self.content = ""

    def transition_to(self, status: ArticleStatus) -> None:
        """Flip the status, stamping whichever outcome field the new state needs.

        Re-applying the current status is a no-op.
        """
        status = ArticleStatus(status)
        if status == self.status:
            return
        if self.is_terminal:
            raise InvalidStatusTransition(self.status, status)
        if status == ArticleStatus.ARCHIVED:
            self.archived_at = utcnow()
        elif status == ArticleStatus.FAILED:
            self.error_message = self.error_message or GENERIC_FAILURE
        self.status = status

    def metadata_json(self) -> str:
        """Hot store record: everything except the content."""
        return self.model_dump_json(exclude={"content"})

    @classmethod
    def from_metadata(cls, raw: str) -> "Article":
        return cls.model_validate_json(raw)
