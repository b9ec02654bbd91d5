# services/archiver/app/worker.py
import threading
import time
from typing import Optional
from uuid import UUID

from prometheus_client import Counter, Histogram

from services.archiver.app.extractor import ReadabilityScraper, Scraper
from shared.app_logging.logger import JobContext, get_logger
from shared.config.settings import get_settings
from shared.schemas.article import Article
from shared.storage.errors import BackendUnavailable, Cancelled, StoreError
from shared.storage.interface import ArticleStore
from shared.utils.retry import RetryConfig, RetryError, retry_with_backoff

logger = get_logger("archiver.worker")

JOBS_PROCESSED = Counter(
    "archiver_jobs_total", "Archive jobs by outcome", ["outcome"]
)
EXTRACTION_SECONDS = Histogram(
    "archiver_extraction_seconds", "Time spent fetching and extracting a page"
)


def describe_error(error: Exception) -> str:
    return str(error) or type(error).__name__


class Worker:
    """Drains the archive queue, moving each job from pending to archived or failed.

    Several workers (threads or processes) may share one store; the queue pop
    hands every id to exactly one of them.
    """

    def __init__(
        self,
        store: ArticleStore,
        scraper: Optional[Scraper] = None,
        *,
        name: str = "worker-1",
        extraction_timeout: Optional[float] = None,
        dequeue_backoff: Optional[float] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        settings = get_settings().worker
        self.store = store
        self.scraper = scraper or ReadabilityScraper()
        self.name = name
        self.extraction_timeout = extraction_timeout if extraction_timeout is not None else settings.extraction_timeout
        self.dequeue_backoff = dequeue_backoff if dequeue_backoff is not None else settings.dequeue_backoff
        self.retry_config = retry_config or RetryConfig.from_settings(retryable_exceptions=(BackendUnavailable,))

    def start(self, stop: threading.Event) -> None:
        """Run until ``stop`` is set."""
        logger.info(f"{self.name} started, waiting for jobs")

        while not stop.is_set():
            try:
                article_id = self.store.dequeue(stop)
            except Cancelled:
                break
            except Exception as e:
                logger.error(f"{self.name} queue error: {e}")
                stop.wait(self.dequeue_backoff)
                continue

            try:
                self.process_job(article_id)
            except Exception:
                logger.exception(f"{self.name} failed processing job {article_id}")
                JOBS_PROCESSED.labels(outcome="dropped").inc()

        logger.info(f"{self.name} shutting down")

    def process_job(self, article_id: UUID) -> Optional[Article]:
        """Advance one job to a terminal state; returns the article when it was saved."""
        with JobContext(article_id):
            logger.info("Processing started")

            try:
                article = self.store.get(article_id)
            except StoreError as e:
                logger.error(f"Job abandoned, cannot load article: {e}")
                JOBS_PROCESSED.labels(outcome="dropped").inc()
                return None

            if article.is_terminal:
                logger.warning(f"Article already {article.status.value}, skipping")
                return None

            logger.info(f"Downloading {article.url}")
            started = time.monotonic()
            try:
                result = self.scraper.scrape(article.url, self.extraction_timeout)
                title, excerpt, content = result.title, result.excerpt, result.content
                article.mark_archived(title, excerpt, content)
            except Exception as e:
                logger.error(f"Scraping failed: {describe_error(e)}")
                article.mark_failed(describe_error(e))
                outcome = "failed"
            else:
                outcome = "archived"
            finally:
                EXTRACTION_SECONDS.observe(time.monotonic() - started)

            if not self._save(article):
                JOBS_PROCESSED.labels(outcome="dropped").inc()
                return None

            JOBS_PROCESSED.labels(outcome=outcome).inc()
            if outcome == "archived":
                logger.info(f"Archiving complete: {article.title!r}")
            else:
                logger.info("Job marked as failed")
            return article

    def _save(self, article: Article) -> bool:
        try:
            retry_with_backoff(self.store.save, article, config=self.retry_config)
        except RetryError as e:
            logger.error(f"Failed to save result, job dropped: {e.__cause__}")
            return False
        except StoreError as e:
            logger.error(f"Failed to save result, job dropped: {e}")
            return False
        return True
