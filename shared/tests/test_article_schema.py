from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from shared.schemas.article import (GENERIC_FAILURE, Article, ArticleStatus,
                                    InvalidStatusTransition)


def test_create_sets_pending_defaults():
    article = Article.create("https://example.com")

    assert article.status == ArticleStatus.PENDING
    assert article.url == "https://example.com"
    assert article.created_at.tzinfo is not None
    assert article.archived_at is None
    assert article.error_message == ""
    assert article.content == ""
    assert not article.is_terminal


def test_ids_are_unique():
    assert Article.create("https://a").id != Article.create("https://a").id


def test_mark_archived():
    article = Article.create("https://example.com")
    at = datetime(2024, 1, 1, tzinfo=timezone.utc)

    article.mark_archived("T", "short", "<p>c</p>", at=at)

    assert article.status == ArticleStatus.ARCHIVED
    assert article.archived_at == at
    assert (article.title, article.excerpt, article.content) == ("T", "short", "<p>c</p>")
    assert article.error_message == ""


def test_mark_failed():
    article = Article.create("https://example.com")
    article.mark_failed("404")

    assert article.status == ArticleStatus.FAILED
    assert article.error_message == "404"
    assert article.archived_at is None
    assert article.content == ""


def test_mark_failed_never_leaves_error_message_empty():
    article = Article.create("https://example.com")
    article.mark_failed("")
    assert article.error_message == GENERIC_FAILURE


@pytest.mark.parametrize("finish", [
    lambda a: a.mark_archived("T", "", "<p>c</p>"),
    lambda a: a.mark_failed("boom"),
])
def test_terminal_states_are_final(finish):
    article = Article.create("https://example.com")
    finish(article)

    with pytest.raises(InvalidStatusTransition):
        article.mark_archived("T", "", "<p>c</p>")
    with pytest.raises(InvalidStatusTransition):
        article.mark_failed("again")
    with pytest.raises(InvalidStatusTransition):
        article.transition_to(ArticleStatus.PENDING)


def test_transition_to_same_status_is_allowed():
    article = Article.create("https://example.com")
    article.mark_failed("boom")

    article.transition_to(ArticleStatus.FAILED)

    assert article.status == ArticleStatus.FAILED
    assert article.error_message == "boom"


def test_transition_to_stamps_outcome_fields():
    archived = Article.create("https://example.com")
    archived.transition_to(ArticleStatus.ARCHIVED)
    assert archived.archived_at is not None

    failed = Article.create("https://example.com")
    failed.transition_to("failed")
    assert failed.error_message == GENERIC_FAILURE


@pytest.mark.parametrize("fields", [
    {"status": "pending", "error_message": "x"},
    {"status": "pending", "archived_at": "2024-01-01T00:00:00Z"},
    {"status": "archived"},
    {"status": "archived", "archived_at": "2024-01-01T00:00:00Z", "error_message": "x"},
    {"status": "failed"},
    {"status": "failed", "error_message": "x", "archived_at": "2024-01-01T00:00:00Z"},
])
def test_inconsistent_records_are_rejected(fields):
    with pytest.raises(ValidationError):
        Article(url="https://example.com", **fields)


def test_metadata_json_excludes_content():
    article = Article.create("https://example.com")
    article.mark_archived("T", "", "<p>c</p>")

    restored = Article.from_metadata(article.metadata_json())

    assert restored.content == ""
    assert restored.model_dump(exclude={"content"}) == article.model_dump(exclude={"content"})
