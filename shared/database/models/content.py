from sqlalchemy import Column, DateTime, Integer, LargeBinary, String, func

from shared.database.base import Base


class ArticleContent(Base):
    """Compressed article body, keyed by the article id."""

    __tablename__ = "article_content"

    article_id = Column(String(36), primary_key=True)
    content = Column(LargeBinary, nullable=False)
    content_length = Column(Integer, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
