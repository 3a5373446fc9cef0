# src/proofer/errors.py


class ProoferError(Exception):
    """Base class for errors that abort a proofing run."""


class ConfigurationError(ProoferError, ValueError):
    """
    Invalid or unrecognized configuration (malformed ignore pattern, unknown
    sort mode, bad cache timeframe). Raised before any document is processed.

    Subclasses ValueError so pydantic validators can raise it directly.
    """


class FatalIOError(ProoferError):
    """The input document set is empty or cannot be read."""


class ResolutionError(ProoferError):
    """
    Failure while resolving a single reference. Never escapes a run:
    it is always converted into an Issue carrying its status and message.
    """

    def __init__(self, message: str, status: int = -1):
        super().__init__(message)
        self.status = status
