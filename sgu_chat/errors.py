"""Exception types raised by the chat engine.

Routing outcomes (link refusal, off-topic, clarification) are never raised;
they are ordinary ``Decision`` values. Only transport-level problems and
caller misuse surface as exceptions.
"""

from typing import Optional


class SguChatError(Exception):
    """Base class for errors raised by this package."""


class CorpusLoadError(SguChatError):
    """Raised when the knowledge corpus files cannot be read or parsed."""


class GenerationError(SguChatError):
    """Raised when a generated answer could not be produced."""


class GenerationTransportError(GenerationError):
    """Raised when the generation provider is unreachable or returns an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class IncompleteStreamError(GenerationError):
    """Raised when the provider stream closes before sending ``done``."""


class TurnInProgressError(SguChatError):
    """Raised when a message is sent while the session's previous reply still streams."""
