"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from pathlib import Path

from muzik.domain.entities import RelationKind, Song


@dataclass
class TaggingResult:
    """Result of a tagging operation.

    Hey future me - captures success/failure and details! write_tags never raises for format
    problems, it reports them here.
    """

    success: bool
    file_path: str
    format: str | None = None
    error: str | None = None
    fields_written: list[str] | None = None


# Hey future me, ISongRepository is the per-transaction view of the metadata store. Every method
# runs on ONE session; nothing here commits. Get one from IMetadataStore.transaction() when
# several writes (plus a file rename) must succeed or fail together, e.g. in the song editor.
class ISongRepository(ABC):
    """Repository interface for songs and their four relations."""

    @abstractmethod
    async def find_or_create_named(self, kind: RelationKind, name: str) -> int:
        """Exact-match lookup by name; create a row only on miss. Returns the id."""
        pass

    @abstractmethod
    async def link(self, kind: RelationKind, song_id: int, other_id: int) -> None:
        """Insert one junction row (no duplicate check)."""
        pass

    @abstractmethod
    async def unlink(self, kind: RelationKind, song_id: int, other_id: int) -> bool:
        """Delete one junction row for the pair. False when none exists."""
        pass

    @abstractmethod
    async def linked_ids(self, kind: RelationKind, song_id: int) -> list[int]:
        """Ids of the related rows linked to a song."""
        pass

    @abstractmethod
    async def replace_links(
        self, song_id: int, kind: RelationKind, names: str | Iterable[str]
    ) -> None:
        """Delete every link of the relation, then link each name."""
        pass

    @abstractmethod
    async def insert_song(self, song: Song) -> int:
        """Insert the scalar song row only. Returns the new id."""
        pass

    @abstractmethod
    async def update_song(self, song_id: int, song: Song) -> None:
        """Update the scalar song row only."""
        pass

    @abstractmethod
    async def set_path(self, song_id: int, path: str | None) -> None:
        """Update only the stored relative path of a song."""
        pass

    @abstractmethod
    async def delete_song(self, song_id: int) -> None:
        """Clear all junction rows of the song, then delete it."""
        pass

    @abstractmethod
    async def exists(self, song_id: int) -> bool:
        pass

    @abstractmethod
    async def get(self, song_id: int, music_dir: Path | None = None) -> Song | None:
        """Get one persisted song with its relations."""
        pass

    @abstractmethod
    async def get_all(self, music_dir: Path | None = None) -> list[Song]:
        pass

    @abstractmethod
    async def get_matching_ids(
        self, ids: Iterable[int], music_dir: Path | None = None
    ) -> list[Song]:
        pass

    @abstractmethod
    async def get_excluding_ids(
        self, ids: Iterable[int], music_dir: Path | None = None
    ) -> list[Song]:
        pass

    @abstractmethod
    async def insert_with_relations(self, song: Song) -> Song:
        """Insert the song and all four relation sets. Returns it as persisted."""
        pass

    @abstractmethod
    async def update_with_relations(self, song: Song) -> Song:
        """Update the scalar row and replace all four relation sets."""
        pass

    @abstractmethod
    async def is_song_in_database(self, song: Song) -> bool:
        """Match check used during reconciliation."""
        pass

    @abstractmethod
    async def list_names(self, kind: RelationKind) -> list[str]:
        pass


# Hey future me, IMetadataStore is what services get injected with (never a raw session). Each
# method is its own transaction. The reconciler only needs is_song_in_database and
# fetch_excluding_ids; the editor additionally uses transaction() for its atomic save.
class IMetadataStore(ABC):
    """Transaction-owning facade over the song repository."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[ISongRepository]:
        """Open one unit of work; commit on success, rollback on error."""
        pass

    @abstractmethod
    async def is_song_in_database(self, song: Song) -> bool:
        pass

    @abstractmethod
    async def fetch_all(self, music_dir: Path | None = None) -> list[Song]:
        pass

    @abstractmethod
    async def fetch_excluding_ids(
        self, ids: Iterable[int], music_dir: Path | None = None
    ) -> list[Song]:
        pass

    @abstractmethod
    async def get_song(self, song_id: int, music_dir: Path | None = None) -> Song | None:
        pass

    @abstractmethod
    async def delete_song(self, song_id: int | None) -> None:
        pass

    @abstractmethod
    async def list_names(self, kind: RelationKind) -> list[str]:
        pass


class ITagCodec(ABC):
    """Reads and writes the embedded metadata of one audio file."""

    @abstractmethod
    async def read_tags(self, path: Path) -> Song:
        """Decode tags into a transient Song. Raises TagCodecError."""
        pass

    @abstractmethod
    async def write_tags(self, path: Path, song: Song) -> TaggingResult:
        """Encode the song's fields (identifier included) into the file."""
        pass

    @abstractmethod
    async def embed_artwork(self, file_path: Path, artwork_url: str | None = None) -> bool:
        """Embed a cover image fetched from artwork_url. False when it could not."""
        pass


class IAudioFileLister(ABC):
    """Lists audio files of a directory."""

    @abstractmethod
    def list_audio_files(self, directory: Path, max_depth: int = 1) -> list[Path]:
        """Audio files up to max_depth levels deep. Raises LibraryIOError."""
        pass


__all__ = [
    "TaggingResult",
    "ISongRepository",
    "IMetadataStore",
    "ITagCodec",
    "IAudioFileLister",
]
