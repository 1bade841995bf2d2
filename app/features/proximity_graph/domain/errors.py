"""
Error taxonomy for the proximity graph feature.

Interactive entry points raise AuthenticationRequired, InvalidArgument or
ResourceNotFound and the API layer turns them into structured responses.
Short-range lookup misses are never errors: they resolve to a negative
result. Background jobs catch everything and report through logs and their
result dict.
"""


class ProximityGraphError(Exception):
    """Base class for feature errors."""

    code = "internal"

    def __init__(self, message: str, *, recoverable: bool = True):
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class AuthenticationRequired(ProximityGraphError):
    code = "unauthenticated"

    def __init__(self, message: str = "Auth required"):
        super().__init__(message, recoverable=False)


class InvalidArgument(ProximityGraphError):
    code = "invalid-argument"

    def __init__(self, message: str):
        super().__init__(message, recoverable=False)


class ResourceNotFound(ProximityGraphError):
    """The caller asked for a post or group that is missing or not theirs."""

    code = "not-found"

    def __init__(self, message: str):
        super().__init__(message, recoverable=False)


class BatchCommitFailure(ProximityGraphError):
    """An atomic batch did not commit; nothing from it is visible."""

    code = "batch-commit-failed"


class TransientDeliveryFailure(ProximityGraphError):
    """Push delivery to one recipient failed; logged and isolated."""

    code = "delivery-failed"
