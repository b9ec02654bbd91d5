#services/archiver/app/main.py
import threading
from contextlib import asynccontextmanager
from typing import List
from uuid import UUID

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, HttpUrl

from services.archiver.app.worker import Worker
from shared.app_logging.logger import setup_logging
from shared.config.settings import WorkerSettings, get_settings
from shared.schemas.article import Article
from shared.storage.errors import NotFound, StoreError
from shared.storage.hybrid import RECENT_LIMIT, HybridStore, open_hybrid_store
from shared.utils.health import HealthChecker, create_health_checker

# Setup logging
logger = setup_logging("archiver")

# Get configuration
settings = get_settings()


class ArchiveRequest(BaseModel):
    url: HttpUrl


def start_workers(store: HybridStore, stop: threading.Event, worker_settings: WorkerSettings) -> List[threading.Thread]:
    """Start the configured number of worker threads sharing one stop event."""
    if not worker_settings.enabled or worker_settings.concurrency == 0:
        logger.info("Workers disabled; running as producer only")
        return []
    if not store.has_cold_store:
        logger.warning("Workers running without a cold store; archived content cannot be saved")

    threads = []
    for i in range(worker_settings.concurrency):
        worker = Worker(store, name=f"worker-{i + 1}")
        thread = threading.Thread(target=worker.start, args=(stop,), name=worker.name, daemon=True)
        thread.start()
        threads.append(thread)
    logger.info(f"Launched {len(threads)} archive worker(s)")
    return threads


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting archiver service...")
    # Unreachable Redis is fatal: BackendUnavailable aborts startup.
    store = open_hybrid_store(settings, "archiver")
    app.state.store = store

    stop = threading.Event()
    threads = start_workers(store, stop, settings.worker)
    try:
        yield
    finally:
        logger.info("Shutting down archiver service...")
        stop.set()
        for thread in threads:
            thread.join(timeout=settings.worker.shutdown_grace)
            if thread.is_alive():
                logger.warning(f"{thread.name} still busy after {settings.worker.shutdown_grace}s grace period")
        store.close()
        logger.info("Stores closed")


app = FastAPI(
    title="Crusty Buffer Archiver",
    description="Queues web pages and archives their readable content.",
    lifespan=lifespan,
)


def get_store(request: Request) -> HybridStore:
    return request.app.state.store


def get_health_checker(store: HybridStore = Depends(get_store)) -> HealthChecker:
    return create_health_checker("archiver", store)


@app.post("/articles", status_code=201)
def add_article(body: ArchiveRequest, store: HybridStore = Depends(get_store)):
    """Queue a URL for archiving."""
    article = Article.create(str(body.url))
    try:
        store.save(article)
    except StoreError as e:
        logger.error(f"Failed to queue {article.url}: {e}")
        raise HTTPException(status_code=503, detail="Failed to queue article.")

    logger.info(f"Article {article.id} queued for {article.url}")
    return article.model_dump(mode="json", exclude={"content"})


@app.get("/articles")
def list_articles(
    limit: int = Query(RECENT_LIMIT, ge=1, le=100),
    store: HybridStore = Depends(get_store),
):
    """Most recently queued articles, newest first."""
    try:
        articles = store.list(limit)
    except StoreError as e:
        logger.error(f"Failed to list articles: {e}")
        raise HTTPException(status_code=503, detail="Failed to list articles.")
    return [a.model_dump(mode="json", exclude={"content"}) for a in articles]


@app.get("/articles/{article_id}")
def get_article(article_id: UUID, store: HybridStore = Depends(get_store)):
    """A single article, with its content once archived."""
    try:
        article = store.get(article_id)
    except NotFound:
        raise HTTPException(status_code=404, detail=f"Article {article_id} not found.")
    except StoreError as e:
        logger.error(f"Failed to load article {article_id}: {e}")
        raise HTTPException(status_code=503, detail="Failed to load article.")
    return article.model_dump(mode="json")


@app.get("/archiver/health")
def health(checker: HealthChecker = Depends(get_health_checker)):
    """Comprehensive health check endpoint."""
    return checker.run_all_checks()


@app.get("/archiver/health/live")
def liveness_check():
    """Liveness check endpoint."""
    return {"status": "alive", "service": "archiver"}


@app.get("/archiver/health/ready")
def readiness_check(checker: HealthChecker = Depends(get_health_checker)):
    """Readiness check endpoint."""
    return checker.readiness()


@app.get("/archiver/status")
def get_archiver_status(store: HybridStore = Depends(get_store)):
    """Whether the archive queue has been drained."""
    try:
        pending = store.pending_jobs()
    except StoreError as e:
        logger.error(f"Redis error checking archiver status: {e}")
        raise HTTPException(status_code=503, detail="Error checking archiver status.")
    return {"is_idle": pending == 0, "pending_jobs": pending}


@app.get("/archiver/metrics")
def metrics():
    """Prometheus metrics endpoint."""
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
