"""Error taxonomy shared by the subscription core and its collaborators."""

from __future__ import annotations


class InstituteError(Exception):
    """Base class for errors raised by the subscription core."""

    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def cause(self) -> BaseException | None:
        """Original collaborator error this one was translated from."""
        return self.__cause__


class ValidationError(InstituteError):
    """Malformed input; never retried and shown to the caller verbatim."""


class TransientError(InstituteError):
    """Collaborator unreachable or timed out; safe to retry with the same inputs."""

    retryable = True


class ConflictError(InstituteError):
    """A concurrent write made the caller's read stale; re-fetch before retrying."""


__all__ = [
    "InstituteError",
    "ValidationError",
    "TransientError",
    "ConflictError",
]
