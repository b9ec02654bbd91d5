"""Cold store: article bodies in an embedded SQLite database, gzip-compressed."""

import gzip
from contextlib import contextmanager
from typing import Optional
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from shared.app_logging.logger import get_logger
from shared.database.models.content import ArticleContent
from shared.database.session import create_cold_engine, create_session_factory
from shared.storage.errors import BackendUnavailable

logger = get_logger("shared.storage.cold")


class ColdStore:
    """Content records keyed by article id."""

    def __init__(self, path: str, busy_timeout: float = 15.0):
        self.path = path
        try:
            self._engine = create_cold_engine(path, busy_timeout=busy_timeout)
        except SQLAlchemyError as e:
            raise BackendUnavailable(f"cannot open cold store at {path}: {e}") from e
        self._sessions = create_session_factory(self._engine)

    @contextmanager
    def _session(self, action: str):
        session = self._sessions()
        try:
            yield session
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Cold store {action} failed: {e}")
            raise BackendUnavailable(f"cold store {action} failed: {e}") from e
        finally:
            session.close()

    def put(self, article_id: UUID, content: str) -> None:
        raw = content.encode("utf-8")
        record = ArticleContent(
            article_id=str(article_id),
            content=gzip.compress(raw),
            content_length=len(raw),
        )
        with self._session("write") as session:
            session.merge(record)
            session.commit()
        logger.debug(f"Stored {len(raw)} bytes of content for {article_id}")

    def get(self, article_id: UUID) -> Optional[str]:
        with self._session("read") as session:
            record = session.get(ArticleContent, str(article_id))
            if record is None:
                return None
            return gzip.decompress(record.content).decode("utf-8")

    def exists(self, article_id: UUID) -> bool:
        with self._session("read") as session:
            return session.get(ArticleContent, str(article_id)) is not None

    def ping(self) -> bool:
        with self._session("ping") as session:
            session.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self._engine.dispose()
        logger.info("Cold store closed")
