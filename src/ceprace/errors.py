"""
Error taxonomy for CEP Race.

Source failures are data: the coordinator turns them into a Failure outcome.
Only InvalidInputError and ScopeCancelledError ever reach the caller as exceptions.
"""


class CepRaceError(Exception):
    """Base class for every error raised by this package."""


class SourceError(CepRaceError):
    """
    A provider failed to answer (network error, bad status, malformed payload).

    Args:
        source_name: Name of the provider that failed.
        message: Human-readable description.
    """

    def __init__(self, source_name: str, message: str) -> None:
        super().__init__(f"{source_name}: {message}")
        self.source_name = source_name
        self.message = message


class InvalidInputError(CepRaceError, ValueError):
    """Programmer or configuration error detected before any task is spawned."""


class ScopeCancelledError(CepRaceError):
    """The cancellation scope was cancelled before the work could complete."""
