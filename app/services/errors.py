"""
Exception hierarchy for the MarketMind services.

These never leave an orchestrator operation: each operation catches them
and returns its documented fallback value instead.
"""


class MarketMindError(Exception):
    """Base exception for all MarketMind errors."""

    pass


class InvalidSymbolError(MarketMindError, ValueError):
    """Raised when a ticker symbol is blank."""

    pass


class GenerationError(MarketMindError):
    """Raised when the generation service returns something unusable."""

    pass


class EmptyResponseError(GenerationError):
    """Raised when the generation service returns no text."""

    pass


class MalformedResponseError(GenerationError):
    """Raised when a reply is not the JSON shape that was asked for."""

    def __init__(self, message: str, raw_text: str = ""):
        self.raw_text = raw_text
        super().__init__(message)
