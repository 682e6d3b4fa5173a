"""Exception types raised by the rhyme suggestion engine."""

from __future__ import annotations


class RhymeLinesError(Exception):
    """Base class for engine errors."""


class InvalidInput(RhymeLinesError):
    """A target word was rejected by the normalizer.

    Query code records this as an ``invalid-input`` rejection instead of
    raising it to callers.
    """


class DictionaryLoadFailure(RhymeLinesError):
    """The phonetic dictionary could not be fetched, parsed or validated."""


class DictionaryVersionMismatch(DictionaryLoadFailure):
    """The dictionary payload declares a schema version other than the one requested."""

    def __init__(self, detected: int, expected: int) -> None:
        super().__init__(
            f"Rhyme DB version mismatch: detected v{detected}, expected v{expected}"
        )
        self.detected = detected
        self.expected = expected


class ClientTerminated(RhymeLinesError):
    """An operation was attempted on a terminated worker client."""


class MalformedResponse(RhymeLinesError):
    """A worker reply could not be matched to a pending request or decoded."""


__all__ = [
    "RhymeLinesError",
    "InvalidInput",
    "DictionaryLoadFailure",
    "DictionaryVersionMismatch",
    "ClientTerminated",
    "MalformedResponse",
]
