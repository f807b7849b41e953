"""
Exceptions raised by the artwork service layer.

Each generation stage raises its own error type so the orchestrator and the
queue can decide between surfacing, retrying and abandoning.
"""


class ArtworkError(Exception):
    """Base class for artwork errors."""

    retryable = False


class ValidationError(ArtworkError):
    """Request input is disallowed or malformed."""


class FetchError(ArtworkError):
    """A manifest or image could not be retrieved."""

    retryable = True


class DecodeError(ArtworkError):
    """An image could not be decoded by any decoder in the chain."""

    def __init__(self, url, message=None):
        self.url = url
        super().__init__(message or f'Unable to decode image from {url}')


class NoSuitableRenditionError(ArtworkError):
    """The manifest offers no admissible rendition."""


class TranscodeError(ArtworkError):
    """ffmpeg exited non-zero, timed out, or produced no output."""


class UnsupportedLayoutError(ArtworkError):
    """No composite layout exists for the given image count."""


class GenerationFailedError(ArtworkError):
    """The output could not be committed, e.g. it was empty."""


class NotFoundError(ArtworkError):
    """No committed artifact exists for the key."""
