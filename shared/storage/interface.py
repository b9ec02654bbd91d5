import threading
from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from shared.schemas.article import Article, ArticleStatus


class ArticleStore(ABC):
    """What the worker and the API need from article persistence."""

    @abstractmethod
    def save(self, article: Article) -> None:
        """Persist metadata (and content, if any); enqueue a first-time pending article."""

    @abstractmethod
    def get(self, article_id: UUID) -> Article:
        """Merged article; raises NotFound when no metadata exists."""

    @abstractmethod
    def list(self, limit: int) -> List[Article]:
        """Most recently queued articles first, without content."""

    @abstractmethod
    def update_status(self, article_id: UUID, status: ArticleStatus) -> Article:
        """Load, flip the status, re-save. Last write wins."""

    @abstractmethod
    def dequeue(self, stop: Optional[threading.Event] = None) -> UUID:
        """Block until a job id is available; raises Cancelled once ``stop`` is set."""

    def close(self) -> None:
        pass
