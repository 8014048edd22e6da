class SearchError(Exception):
    """Base class for errors raised by the search engine."""


class InvalidSearchRequest(SearchError):
    """The request was rejected before any store access."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.message = message
        self.field = field


class StoreUnavailable(SearchError):
    """The document store failed to answer a query."""
