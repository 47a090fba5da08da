"""Error taxonomy for the ranking services.

- InvalidArgumentError: caller mistakes, raised before any store call.
- StoreUnavailableError: Redis unreachable or answering with an error.

An absent partition or an empty window is never an error; it reads as [].
"""


class RankingError(RuntimeError):
    """Base class for ranking errors."""


class InvalidArgumentError(RankingError, ValueError):
    """Raised when a request can be rejected without touching the store."""


class StoreUnavailableError(RankingError):
    """Raised when the backing sorted-set store fails a command."""

    def __init__(self, operation: str, key: str, message: str) -> None:
        super().__init__(f"{operation} on {key!r} failed: {message}")
        self.operation = operation
        self.key = key
