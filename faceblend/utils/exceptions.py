"""Domain exceptions shared across Faceblend services."""


class FaceblendException(Exception):
    """Base exception for Faceblend errors."""
    pass


class InsufficientPoolError(FaceblendException):
    """Raised when the identity pool cannot supply two answers plus the decoys."""

    def __init__(self, pool_size: int, required: int):
        self.pool_size = pool_size
        self.required = required
        super().__init__(f"Identity pool has {pool_size} entries; at least {required} are required")


class MetadataLookupFailure(FaceblendException):
    """Raised by the metadata client when identity details cannot be fetched.

    The enricher recovers from this locally, so it never reaches API callers.
    """
    pass


class GenerationFailedError(FaceblendException):
    """Raised when the fused image could not be generated for a day."""
    pass


class GenerationTimeoutError(GenerationFailedError):
    """Raised when generation (or waiting on an in-flight generation) timed out."""
    pass


class CacheUnavailableError(FaceblendException):
    """Raised when the artifact cache store cannot be read or written."""
    pass
