"""Repository implementation for songs and their relations."""

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path, PurePosixPath
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from muzik.domain.entities import (
    RELATION_ENTITIES,
    Persisted,
    RelationKind,
    Song,
    SongSource,
    split_names,
)
from muzik.domain.exceptions import NoSongFoundError, NoSongIdError
from muzik.domain.ports import ISongRepository

from .models import (
    AlbumModel,
    ArtistModel,
    GenreModel,
    JunctionModel,
    NamedModel,
    PlaylistReferenceModel,
    SongAlbumJunctionModel,
    SongArtistJunctionModel,
    SongGenreJunctionModel,
    SongModel,
    SongPlaylistReferenceJunctionModel,
)

logger = logging.getLogger(__name__)

NAMED_MODELS: dict[RelationKind, type[NamedModel]] = {
    RelationKind.ARTIST: ArtistModel,
    RelationKind.ALBUM: AlbumModel,
    RelationKind.GENRE: GenreModel,
    RelationKind.PLAYLIST_REFERENCE: PlaylistReferenceModel,
}

JUNCTION_MODELS: dict[RelationKind, type[JunctionModel]] = {
    RelationKind.ARTIST: SongArtistJunctionModel,
    RelationKind.ALBUM: SongAlbumJunctionModel,
    RelationKind.GENRE: SongGenreJunctionModel,
    RelationKind.PLAYLIST_REFERENCE: SongPlaylistReferenceJunctionModel,
}


def _resolve_path(music_dir: Path | None, stored_path: str | None) -> Path | None:
    """On-disk location of a stored relative path (stored with POSIX separators)."""
    if music_dir is None or not stored_path:
        return None
    return music_dir.joinpath(*PurePosixPath(stored_path).parts)


class SongRepository(ISongRepository):
    """SQLAlchemy implementation of the song repository."""

    # Hey future me, this is the Repository pattern! The repo gets its AsyncSession injected and
    # NEVER commits - MetadataStore.transaction() does. Everything a repo method stages is rolled
    # back together if anything later in the same transaction raises. Don't create your own
    # session inside the repo or the atomic editor save stops being atomic.
    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    # =========================================================================
    # NAMED ENTITIES (artist / album / genre / playlist reference)
    # =========================================================================

    # Yo, exact-match lookup! "LiSA" != "lisa" on purpose (SQLite BINARY collation). flush() is
    # what assigns the autoincrement id without committing, so the caller can link right away.
    async def find_or_create_named(self, kind: RelationKind, name: str) -> int:
        """Return the id of the named row, creating it on miss."""
        model_cls = NAMED_MODELS[kind]
        stmt = select(model_cls.id).where(model_cls.name == name)
        result = await self.session.execute(stmt)
        existing = result.scalar_one_or_none()
        if existing is not None:
            logger.debug("Found %s %r [%s]", kind.value, name, existing)
            return existing

        model = model_cls(name=name)
        self.session.add(model)
        await self.session.flush()
        logger.debug("Created %s %r [%s]", kind.value, name, model.id)
        return model.id

    async def list_names(self, kind: RelationKind) -> list[str]:
        """All known names of one relation, sorted."""
        model_cls = NAMED_MODELS[kind]
        result = await self.session.execute(select(model_cls.name).order_by(model_cls.name))
        return list(result.scalars().all())

    # =========================================================================
    # LINKS (junction rows)
    # =========================================================================

    async def link(self, kind: RelationKind, song_id: int, other_id: int) -> None:
        """Insert one junction row.

        Hey future me - there's NO duplicate check here and no unique constraint on the pair, so
        calling this twice creates two rows. That's the documented behavior of the schema.
        """
        junction_cls = JUNCTION_MODELS[kind]
        self.session.add(junction_cls(song_id=song_id, other_id=other_id))
        await self.session.flush()

    async def unlink(self, kind: RelationKind, song_id: int, other_id: int) -> bool:
        """Delete exactly one junction row for the pair; False when there is none."""
        junction_cls = JUNCTION_MODELS[kind]
        stmt = (
            select(junction_cls.key)
            .where(junction_cls.song_id == song_id, junction_cls.other_id == other_id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        key = result.scalar_one_or_none()
        if key is None:
            logger.debug("No %s link %s -> %s to remove", kind.value, song_id, other_id)
            return False
        await self.session.execute(delete(junction_cls).where(junction_cls.key == key))
        return True

    async def linked_ids(self, kind: RelationKind, song_id: int) -> list[int]:
        junction_cls = JUNCTION_MODELS[kind]
        stmt = (
            select(junction_cls.other_id)
            .where(junction_cls.song_id == song_id)
            .order_by(junction_cls.key)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # Listen up, this is the ONLY update path for relations: delete all links, then re-link each
    # name (find-or-create first). No diffing. Names are deduplicated first so "A; A" yields a
    # single link row.
    async def replace_links(
        self, song_id: int, kind: RelationKind, names: str | Iterable[str]
    ) -> None:
        """Replace every link of one relation for a song.

        names is either an iterable of names or one "A; B" string.
        """
        junction_cls = JUNCTION_MODELS[kind]
        result = await self.session.execute(
            delete(junction_cls).where(junction_cls.song_id == song_id)
        )
        logger.debug(
            "Removed %s %s link(s) of song %s", result.rowcount, kind.value, song_id
        )

        for name in split_names(names):
            other_id = await self.find_or_create_named(kind, name)
            await self.link(kind, song_id, other_id)

    async def _clear_links(self, song_id: int) -> None:
        for junction_cls in JUNCTION_MODELS.values():
            await self.session.execute(
                delete(junction_cls).where(junction_cls.song_id == song_id)
            )

    # =========================================================================
    # SONG ROWS
    # =========================================================================

    async def insert_song(self, song: Song) -> int:
        """Insert the scalar row of a song and return its new id."""
        model = SongModel(
            title=song.title_string,
            source_id=song.source_id,
            thumbnail_url=song.thumbnail_url,
            path=song.database_path,
        )
        self.session.add(model)
        await self.session.flush()
        logger.debug("Inserted song %r [%s]", model.title, model.id)
        return model.id

    async def update_song(self, song_id: int, song: Song) -> None:
        """Update the scalar row of a song."""
        model = await self.session.get(SongModel, song_id)
        if model is None:
            raise NoSongFoundError(song_id)
        model.title = song.title_string
        model.source_id = song.source_id
        model.thumbnail_url = song.thumbnail_url
        model.path = song.database_path
        await self.session.flush()

    async def set_path(self, song_id: int, path: str | None) -> None:
        model = await self.session.get(SongModel, song_id)
        if model is None:
            raise NoSongFoundError(song_id)
        model.path = path
        await self.session.flush()

    # Hey future me - junction rows go FIRST, the song row last. Foreign keys are ON for SQLite,
    # so the other order fails with an IntegrityError.
    async def delete_song(self, song_id: int) -> None:
        """Delete a song and every link referencing it."""
        if not await self.exists(song_id):
            raise NoSongFoundError(song_id)
        await self._clear_links(song_id)
        await self.session.execute(delete(SongModel).where(SongModel.id == song_id))
        logger.debug("Deleted song %s", song_id)

    async def exists(self, song_id: int) -> bool:
        result = await self.session.execute(select(SongModel.id).where(SongModel.id == song_id))
        return result.scalar_one_or_none() is not None

    # =========================================================================
    # COMPOSITE OPERATIONS
    # =========================================================================

    async def insert_with_relations(self, song: Song) -> Song:
        """Insert the scalar row plus all four relation sets."""
        song_id = await self.insert_song(song)
        for kind in RelationKind:
            for name in split_names(song.names(kind)):
                other_id = await self.find_or_create_named(kind, name)
                await self.link(kind, song_id, other_id)
        persisted = song.with_identity(song_id)
        persisted.stored_path = song.database_path
        return persisted

    async def update_with_relations(self, song: Song) -> Song:
        """Update the scalar row and replace all four relation sets."""
        song_id = song.id
        if song_id is None:
            raise NoSongIdError()
        if not await self.exists(song_id):
            raise NoSongFoundError(song_id)
        await self.update_song(song_id, song)
        for kind in RelationKind:
            await self.replace_links(song_id, kind, song.names(kind))
        persisted = song.with_identity(song_id)
        persisted.stored_path = song.database_path
        return persisted

    # Yo, the match check of reconciliation! A scanned file counts as "already in the database"
    # only if its embedded id points at a row whose title AND stored file name both agree with
    # the file. A stale id (row deleted or reused) therefore never claims a foreign row.
    async def is_song_in_database(self, song: Song) -> bool:
        """Whether a scanned song matches the stored row its embedded id points at."""
        if song.id is None:
            return False
        model = await self.session.get(SongModel, song.id)
        if model is None:
            return False
        file_name = song.path.name if song.path is not None else song.file_name
        stored_name = PurePosixPath(model.path).name if model.path else ""
        return model.title == song.title_string and stored_name == (file_name or "")

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get(self, song_id: int, music_dir: Path | None = None) -> Song | None:
        model = await self.session.get(SongModel, song_id)
        if model is None:
            return None
        songs = await self._to_songs([model], music_dir)
        return songs[0]

    async def get_all(self, music_dir: Path | None = None) -> list[Song]:
        result = await self.session.execute(select(SongModel).order_by(SongModel.id))
        return await self._to_songs(result.scalars().all(), music_dir)

    async def get_matching_ids(
        self, ids: Iterable[int], music_dir: Path | None = None
    ) -> list[Song]:
        id_list = list(ids)
        if not id_list:
            return []
        stmt = select(SongModel).where(SongModel.id.in_(id_list)).order_by(SongModel.id)
        result = await self.session.execute(stmt)
        return await self._to_songs(result.scalars().all(), music_dir)

    async def get_excluding_ids(
        self, ids: Iterable[int], music_dir: Path | None = None
    ) -> list[Song]:
        id_list = list(ids)
        stmt = select(SongModel).order_by(SongModel.id)
        if id_list:
            stmt = stmt.where(SongModel.id.not_in(id_list))
        result = await self.session.execute(stmt)
        return await self._to_songs(result.scalars().all(), music_dir)

    async def _related_names(
        self, kind: RelationKind, song_ids: Sequence[int]
    ) -> dict[int, list[tuple[int, str]]]:
        """(id, name) pairs per song for one relation, in link order."""
        junction_cls = JUNCTION_MODELS[kind]
        model_cls = NAMED_MODELS[kind]
        stmt = (
            select(junction_cls.song_id, model_cls.id, model_cls.name)
            .join(model_cls, model_cls.id == junction_cls.other_id)
            .where(junction_cls.song_id.in_(song_ids))
            .order_by(junction_cls.key)
        )
        result = await self.session.execute(stmt)
        related: dict[int, list[tuple[int, str]]] = {}
        for song_id, other_id, name in result.all():
            related.setdefault(song_id, []).append((other_id, name))
        return related

    # Hey future me - stored_path carries the relative string from the song.path column; path is
    # music_dir / stored_path when both are known (None otherwise). The reconciler clears path
    # again for the records it reports as database-only. Relations are loaded with one query per
    # relation, not one per song.
    async def _to_songs(
        self, models: Sequence[SongModel], music_dir: Path | None
    ) -> list[Song]:
        if not models:
            return []
        song_ids = [m.id for m in models]
        related = {kind: await self._related_names(kind, song_ids) for kind in RelationKind}

        def entities(kind: RelationKind, song_id: int) -> list[Any]:
            entity_cls = RELATION_ENTITIES[kind]
            return [
                entity_cls(name=name, id=other_id)
                for other_id, name in related[kind].get(song_id, [])
            ]

        songs: list[Song] = []
        for model in models:
            songs.append(
                Song(
                    title=model.title,
                    identity=Persisted(model.id),
                    artists=entities(RelationKind.ARTIST, model.id),
                    albums=entities(RelationKind.ALBUM, model.id),
                    genres=entities(RelationKind.GENRE, model.id),
                    playlist_references=entities(RelationKind.PLAYLIST_REFERENCE, model.id),
                    source_id=model.source_id,
                    thumbnail_url=model.thumbnail_url,
                    path=_resolve_path(music_dir, model.path),
                    music_dir=music_dir,
                    stored_path=model.path,
                    in_database=True,
                    source=SongSource.YOUTUBE if model.source_id else SongSource.LOCAL,
                )
            )
        return songs


__all__ = ["SongRepository", "NAMED_MODELS", "JUNCTION_MODELS"]
