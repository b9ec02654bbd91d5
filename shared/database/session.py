import os

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from shared.app_logging.logger import get_logger
from shared.database.base import Base
from shared.database.models.content import ArticleContent  # noqa: F401  registers the table

logger = get_logger("shared.database")

CONTENT_DB_FILENAME = "content.db"


def content_db_url(path: str) -> str:
    """SQLite URL of the content database inside the cold store directory."""
    os.makedirs(path, exist_ok=True)
    return f"sqlite:///{os.path.join(os.path.abspath(path), CONTENT_DB_FILENAME)}"


def create_cold_engine(path: str, busy_timeout: float = 15.0) -> Engine:
    """Create the engine for the content database and its tables."""
    url = content_db_url(path)
    logger.info(f"Opening cold store at {url}")

    engine = create_engine(
        url,
        connect_args={"check_same_thread": False, "timeout": busy_timeout},
        pool_pre_ping=True,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    init_db(engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def init_db(engine: Engine):
    """Initialize database tables."""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Cold store tables ready")
    except Exception as e:
        logger.error(f"Failed to initialize cold store: {e}")
        raise
