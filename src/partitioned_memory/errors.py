"""
Error types raised by the memory store.

Validation errors are raised before any backend call. Resource limit errors
are raised mid-query when a scan does not narrow as expected. Backend errors
are not wrapped: they propagate with their original type and code.
"""


class ValidationError(ValueError):
    """Raised when an operation's input is malformed."""


class ResourceLimitError(RuntimeError):
    """Raised when a query exceeds one of its safety bounds."""


class IterationLimitExceededError(ResourceLimitError):
    """Raised when a paginated scan needs more pages than allowed."""


class MemoryLimitExceededError(ResourceLimitError):
    """Raised when a scan would hold more candidates in memory than allowed."""


class QueryCancelledError(Exception):
    """Raised when a paginated scan is cancelled between pages."""
