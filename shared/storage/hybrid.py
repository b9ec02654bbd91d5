"""
Hybrid article store: metadata, the archive queue and the recency index in
Redis; article bodies in the embedded cold store.

There is no transaction spanning both backends. Content is written before the
metadata that points at it, so a failure between the two writes leaves the
article in its previous (pending) state rather than falsely archived.
"""

import threading
from typing import List, Optional
from uuid import UUID

from pydantic import ValidationError

from shared.app_logging.logger import get_logger
from shared.config.settings import Settings, get_settings
from shared.schemas.article import Article, ArticleStatus
from shared.storage.cold_store import ColdStore
from shared.storage.errors import Cancelled, ContentStoreUnavailable, NotFound, StoreError
from shared.storage.interface import ArticleStore
from shared.utils.redis_client import RedisClient

logger = get_logger("shared.storage.hybrid")

METADATA_PREFIX = "article:"
QUEUE_KEY = "queue:archive"
RECENT_KEY = "list:recent"
RECENT_LIMIT = 50


def metadata_key(article_id) -> str:
    return f"{METADATA_PREFIX}{article_id}"


class HybridStore(ArticleStore):
    """Redis + cold store behind the ArticleStore contract.

    ``cold`` may be None to run metadata-only (producer processes): saving
    non-empty content then raises ContentStoreUnavailable.
    """

    def __init__(self, hot: RedisClient, cold: Optional[ColdStore] = None, poll_interval: int = 1):
        self.hot = hot
        self.cold = cold
        self.poll_interval = max(1, int(poll_interval))

    @property
    def has_cold_store(self) -> bool:
        return self.cold is not None

    def save(self, article: Article) -> None:
        if article.content:
            if self.cold is None:
                # Metadata still lands; the error tells the caller the content did not.
                self._write_metadata(article)
                raise ContentStoreUnavailable(
                    f"cannot save content for {article.id}: no cold store configured"
                )
            self.cold.put(article.id, article.content)

        self._write_metadata(article)

    def _write_metadata(self, article: Article) -> bool:
        """Upsert the metadata record; returns True when the article was enqueued."""
        key = metadata_key(article.id)
        record = article.metadata_json()
        article_id = str(article.id)
        pending = article.status == ArticleStatus.PENDING

        def write(pipe) -> bool:
            first_save = not pipe.exists(key)
            pipe.multi()
            pipe.set(key, record)
            if pending and first_save:
                pipe.lpush(QUEUE_KEY, article_id)
                pipe.lpush(RECENT_KEY, article_id)
                pipe.ltrim(RECENT_KEY, 0, RECENT_LIMIT - 1)
            return pending and first_save

        enqueued = self.hot.transaction(write, key)
        if enqueued:
            logger.info(f"Queued article {article_id} for {article.url}")
        return enqueued

    def _load_metadata(self, article_id: UUID) -> Article:
        raw = self.hot.get(metadata_key(article_id))
        if raw is None:
            raise NotFound(article_id)
        try:
            return Article.from_metadata(raw)
        except ValidationError as e:
            raise StoreError(f"corrupt metadata record for {article_id}") from e

    def get(self, article_id: UUID) -> Article:
        article = self._load_metadata(article_id)
        if self.cold is not None:
            content = self.cold.get(article.id)
            if content is not None:
                article.content = content
        return article

    def list(self, limit: int) -> List[Article]:
        if limit <= 0:
            return []
        ids = self.hot.lrange(RECENT_KEY, 0, limit - 1)
        records = self.hot.mget([metadata_key(i) for i in ids])

        articles = []
        for article_id, raw in zip(ids, records):
            if raw is None:
                continue
            try:
                articles.append(Article.from_metadata(raw))
            except ValidationError:
                logger.warning(f"Skipping unreadable metadata record for {article_id}")
        return articles

    def update_status(self, article_id: UUID, status: ArticleStatus) -> Article:
        article = self._load_metadata(article_id)
        article.transition_to(status)
        self.save(article)
        return article

    def dequeue(self, stop: Optional[threading.Event] = None) -> UUID:
        while True:
            if stop is not None and stop.is_set():
                raise Cancelled("dequeue cancelled")
            item = self.hot.brpop(QUEUE_KEY, timeout=self.poll_interval)
            if item is None:
                continue
            _, raw_id = item
            try:
                return UUID(raw_id)
            except ValueError as e:
                raise StoreError(f"malformed queue entry {raw_id!r}") from e

    def pending_jobs(self) -> int:
        """Number of ids waiting in the archive queue."""
        return self.hot.llen(QUEUE_KEY)

    def close(self) -> None:
        self.hot.close()
        if self.cold is not None:
            self.cold.close()


def open_hybrid_store(settings: Optional[Settings] = None, service_name: str = "archiver") -> HybridStore:
    """Connect to Redis (raises BackendUnavailable if unreachable) and open the cold store.

    An empty COLD_STORE_PATH gives a metadata-only store.
    """
    settings = settings or get_settings()
    hot = RedisClient(service_name, settings.redis).connect()

    cold = None
    if settings.cold_store.enabled:
        try:
            cold = ColdStore(settings.cold_store.path, busy_timeout=settings.cold_store.busy_timeout)
        except Exception:
            hot.close()
            raise
    else:
        logger.info("No cold store path configured; running metadata-only")

    return HybridStore(hot, cold, poll_interval=settings.worker.poll_interval)
