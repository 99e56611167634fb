"""Exceptions raised by the layering pipeline."""


class LayeringError(Exception):
    """Base class for every error raised by this package."""


class ProcessingError(LayeringError):
    """The image could not be turned into layers."""


class ImageDecodeError(ProcessingError, ValueError):
    """The input is missing, empty, or not a decodable image."""


class QueueFullError(LayeringError):
    """No processing slot became free before the queue timeout elapsed."""

    def __init__(self, timeout: float):
        super().__init__(f"Processing queue is full, no slot freed within {timeout:g}s")
        self.timeout = timeout


class CacheError(LayeringError):
    """The result cache could not be read or written."""
