"""Metadata store: the transaction-owning facade over SongRepository.

Hey future me - services talk to THIS, never to a session. Every public method below is exactly
one transaction (commit on success, rollback on error) and converts SQLAlchemy failures into
StorageError, so callers only ever see domain exceptions. Need several writes to be atomic? Use
`async with store.transaction() as repo:` and call the repository methods inside.
"""

import logging
from collections.abc import AsyncGenerator, Iterable
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from muzik.domain.entities import RelationKind, Song
from muzik.domain.exceptions import NoSongIdError, StorageError
from muzik.domain.ports import IMetadataStore

from .database import Database
from .repositories import SongRepository

logger = logging.getLogger(__name__)


class MetadataStore(IMetadataStore):
    """Asynchronous access to songs, their named entities and links."""

    def __init__(self, database: Database) -> None:
        self.database = database

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[SongRepository, None]:
        """Open one unit of work bound to a single session."""
        try:
            async with self.database.session_scope() as session:
                yield SongRepository(session)
        except SQLAlchemyError as e:
            logger.error("Metadata store operation failed: %s", e)
            raise StorageError(f"Metadata store operation failed: {e}") from e

    # =========================================================================
    # NAMED ENTITIES AND LINKS
    # =========================================================================

    async def find_or_create_named(self, kind: RelationKind, name: str) -> int:
        async with self.transaction() as repo:
            return await repo.find_or_create_named(kind, name)

    async def link(self, kind: RelationKind, song_id: int, other_id: int) -> None:
        async with self.transaction() as repo:
            await repo.link(kind, song_id, other_id)

    async def unlink(self, kind: RelationKind, song_id: int, other_id: int) -> bool:
        """Remove one link; False (no-op) when the pair was never linked."""
        async with self.transaction() as repo:
            return await repo.unlink(kind, song_id, other_id)

    async def linked_ids(self, kind: RelationKind, song_id: int) -> list[int]:
        async with self.transaction() as repo:
            return await repo.linked_ids(kind, song_id)

    async def replace_links(
        self, song_id: int, kind: RelationKind, names: str | Iterable[str]
    ) -> None:
        async with self.transaction() as repo:
            await repo.replace_links(song_id, kind, names)

    async def list_names(self, kind: RelationKind) -> list[str]:
        async with self.transaction() as repo:
            return await repo.list_names(kind)

    # =========================================================================
    # SONGS
    # =========================================================================

    async def insert_song(self, song: Song) -> int:
        """Insert only the scalar row. Prefer insert_song_with_relations."""
        async with self.transaction() as repo:
            return await repo.insert_song(song)

    async def update_song(self, song_id: int | None, song: Song) -> None:
        """Update only the scalar row. Prefer update_song_with_relations."""
        if song_id is None:
            raise NoSongIdError()
        async with self.transaction() as repo:
            await repo.update_song(song_id, song)

    async def insert_song_with_relations(self, song: Song) -> Song:
        async with self.transaction() as repo:
            persisted = await repo.insert_with_relations(song)
        logger.info("Inserted song %r as %s", persisted.title, persisted.id)
        return persisted

    async def update_song_with_relations(self, song: Song) -> Song:
        """Scalar update plus all four relation replacements, atomically."""
        async with self.transaction() as repo:
            updated = await repo.update_with_relations(song)
        logger.info("Updated song %s", updated.id)
        return updated

    async def delete_song(self, song_id: int | None) -> None:
        """Cascade delete: all links of the song, then the song row."""
        if song_id is None:
            raise NoSongIdError()
        async with self.transaction() as repo:
            await repo.delete_song(song_id)
        logger.info("Deleted song %s", song_id)

    async def get_song(self, song_id: int, music_dir: Path | None = None) -> Song | None:
        async with self.transaction() as repo:
            return await repo.get(song_id, music_dir)

    async def is_song_in_database(self, song: Song) -> bool:
        async with self.transaction() as repo:
            return await repo.is_song_in_database(song)

    async def fetch_all(self, music_dir: Path | None = None) -> list[Song]:
        async with self.transaction() as repo:
            return await repo.get_all(music_dir)

    async def fetch_matching_ids(
        self, ids: Iterable[int], music_dir: Path | None = None
    ) -> list[Song]:
        async with self.transaction() as repo:
            return await repo.get_matching_ids(ids, music_dir)

    async def fetch_excluding_ids(
        self, ids: Iterable[int], music_dir: Path | None = None
    ) -> list[Song]:
        async with self.transaction() as repo:
            return await repo.get_excluding_ids(ids, music_dir)
