"""Domain exceptions."""

from pathlib import Path
from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message is stored as an attribute so callers (editor status bars, logs) can
    # show it without parsing str(exception). Don't raise this directly - pick a subclass so
    # callers can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationError(DomainException):
    """Input validation failed.

    Raised by SongBuilder.build() when required fields are missing or
    malformed (empty title, non-positive identifier).
    """

    pass


class ConfigurationError(DomainException):
    """Application misconfiguration.

    Raised when configuration is present but unusable at runtime, e.g. the
    database directory cannot be created or written to.
    """

    pass


# =============================================================================
# Storage exceptions
# =============================================================================


class StorageError(DomainException):
    """Underlying persistence failure.

    Wraps any SQLAlchemy error raised while talking to the metadata store.
    The original exception is always chained (``raise StorageError(...) from e``)
    so the compact log formatter shows the root cause.
    """

    pass


class NoSongIdError(DomainException):
    """Update or delete attempted for a song that was never persisted.

    Example:
        raise NoSongIdError()  # song.identity is Pending
    """

    def __init__(self, message: str = "No song id was given") -> None:
        super().__init__(message)


class NoSongFoundError(EntityNotFoundException):
    """A song identifier does not correspond to any stored row."""

    def __init__(self, song_id: int) -> None:
        super().__init__("Song", song_id)
        self.song_id = song_id


# =============================================================================
# File exceptions
# =============================================================================


class TagCodecError(DomainException):
    """Embedded tags of one file could not be decoded or encoded.

    Hey future me - the reconciler catches THIS one per file and keeps going,
    so a single corrupt file never blocks the whole collection from loading.
    """

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Cannot process tags of {path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class LibraryIOError(DomainException):
    """Filesystem failure inside the music collection (listing, rename, delete)."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"I/O error on {path}: {reason}")
        self.path = Path(path)
        self.reason = reason


# Short aliases matching the names used in error messages and docs
NoSongId = NoSongIdError
NoSongFound = NoSongFoundError


__all__ = [
    # Base
    "DomainException",
    "EntityNotFoundException",
    # Validation / config
    "ValidationError",
    "ConfigurationError",
    # Storage
    "StorageError",
    "NoSongIdError",
    "NoSongFoundError",
    "NoSongId",
    "NoSongFound",
    # Files
    "TagCodecError",
    "LibraryIOError",
]
