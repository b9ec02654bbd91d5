"""Exceptions raised by the article stores."""


class StoreError(Exception):
    """Base class for store failures."""


class NotFound(StoreError, KeyError):
    """The requested article id has no metadata record."""

    def __init__(self, article_id):
        self.article_id = article_id
        super().__init__(f"article not found: {article_id}")

    def __str__(self):
        return self.args[0]


class ContentStoreUnavailable(StoreError):
    """Content was given to save but no cold store is configured."""


class Cancelled(StoreError):
    """A blocking dequeue was stopped by its stop event."""


class BackendUnavailable(StoreError):
    """Network or I/O failure from the hot or the cold store."""
