"""Tests for SongEditorService against a real store and real FLAC files."""

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from muzik.application.services.file_discovery_service import FileDiscoveryService
from muzik.application.services.library_reconciler import LibraryReconciler
from muzik.application.services.metadata_tagger import MetadataTaggerService
from muzik.application.services.song_editor_service import SongEditorService
from muzik.domain.entities import Provenance, RelationKind, SongBuilder
from muzik.domain.exceptions import LibraryIOError, NoSongIdError, StorageError, TagCodecError
from muzik.domain.ports import TaggingResult
from muzik.infrastructure.persistence import Database, MetadataStore, SongRepository


class _CommitFailingStore(MetadataStore):
    """Store whose commit fails after the transaction body has run."""

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[SongRepository, None]:
        async with super().transaction() as repo:
            yield repo
            raise StorageError("database is locked")


def _new_song(path: Path, music_dir: Path, **kwargs):
    fields = {"title": "Crossing Field", "artists": "LiSA", "path": path, "music_dir": music_dir}
    fields.update(kwargs)
    return SongBuilder(**fields).build()


class TestSave:
    """Tests for the atomic save flow."""

    @pytest.mark.asyncio
    async def test_first_save_inserts_renames_and_tags(
        self, store: MetadataStore, music_dir: Path, make_flac: Callable[[str], Path]
    ) -> None:
        path = make_flac("download.flac")
        tagger = MetadataTaggerService()
        editor = SongEditorService(store, tagger)

        saved = await editor.save(_new_song(path, music_dir))

        expected = music_dir / f"Crossing Field - LiSA [{saved.id}].flac"
        assert saved.path == expected
        assert expected.exists()
        assert not path.exists()
        assert saved.stored_path == expected.name
        assert (await tagger.read_tags(expected)).id == saved.id

        stored = await store.get_song(saved.id)
        assert stored is not None
        assert stored.stored_path == expected.name
        assert stored.names(RelationKind.ARTIST) == ["LiSA"]

    @pytest.mark.asyncio
    async def test_saved_song_is_matched_on_next_scan(
        self, store: MetadataStore, music_dir: Path, make_flac: Callable[[str], Path]
    ) -> None:
        tagger = MetadataTaggerService()
        editor = SongEditorService(store, tagger)
        await editor.save(_new_song(make_flac("one.flac"), music_dir))
        make_flac("untracked.flac")

        reconciler = LibraryReconciler(store, tagger, FileDiscoveryService(), music_dir)
        songs = await reconciler.reconcile()

        assert sorted(s.provenance for s in songs) == sorted(
            [Provenance.BOTH, Provenance.DISK_ONLY]
        )

    @pytest.mark.asyncio
    async def test_edit_renames_again(
        self, store: MetadataStore, music_dir: Path, make_flac: Callable[[str], Path]
    ) -> None:
        editor = SongEditorService(store, MetadataTaggerService())
        saved = await editor.save(_new_song(make_flac("download.flac"), music_dir))

        builder = SongBuilder.from_song(saved)
        builder.title = "Catch the Moment"
        edited = await editor.save(builder.build())

        assert edited.id == saved.id
        assert edited.path == music_dir / f"Catch the Moment - LiSA [{saved.id}].flac"
        assert edited.path.exists()
        assert len(await store.fetch_all()) == 1

    @pytest.mark.asyncio
    async def test_tag_failure_rolls_back_and_restores_name(
        self, store: MetadataStore, music_dir: Path, make_flac: Callable[[str], Path]
    ) -> None:
        path = make_flac("download.flac")
        codec = AsyncMock()
        codec.write_tags.return_value = TaggingResult(
            success=False, file_path=str(path), error="disk full"
        )
        editor = SongEditorService(store, codec)

        with pytest.raises(TagCodecError):
            await editor.save(_new_song(path, music_dir))

        assert path.exists()
        assert not (music_dir / "Crossing Field - LiSA [1].flac").exists()
        assert await store.fetch_all() == []
        assert await store.list_names(RelationKind.ARTIST) == []

    @pytest.mark.asyncio
    async def test_commit_failure_strips_uncommitted_id(
        self, database: Database, music_dir: Path, make_flac: Callable[[str], Path]
    ) -> None:
        path = make_flac("download.flac")
        tagger = MetadataTaggerService()
        editor = SongEditorService(_CommitFailingStore(database), tagger)

        with pytest.raises(StorageError):
            await editor.save(_new_song(path, music_dir))

        assert path.exists()
        assert not (music_dir / "Crossing Field - LiSA [1].flac").exists()
        assert await tagger.read_identifier_keys(path) == {"DBID": None, "ID": None}
        assert await MetadataStore(database).fetch_all() == []

    @pytest.mark.asyncio
    async def test_fetched_song_edit_renames_file(
        self, store: MetadataStore, music_dir: Path, make_flac: Callable[[str], Path]
    ) -> None:
        editor = SongEditorService(store, MetadataTaggerService())
        saved = await editor.save(_new_song(make_flac("download.flac"), music_dir))

        fetched = await store.get_song(saved.id, music_dir)
        assert fetched is not None
        assert fetched.path == saved.path
        builder = SongBuilder.from_song(fetched)
        builder.title = "Catch the Moment"
        edited = await editor.save(builder.build())

        assert edited.path == music_dir / f"Catch the Moment - LiSA [{saved.id}].flac"
        assert edited.path.exists()

    @pytest.mark.asyncio
    async def test_missing_file_is_only_stored(
        self, store: MetadataStore, music_dir: Path, make_flac: Callable[[str], Path]
    ) -> None:
        editor = SongEditorService(store, MetadataTaggerService())
        saved = await editor.save(_new_song(make_flac("download.flac"), music_dir))
        assert saved.path is not None
        saved.path.unlink()

        fetched = await store.get_song(saved.id, music_dir)
        assert fetched is not None
        builder = SongBuilder.from_song(fetched)
        builder.title = "Catch the Moment"
        await editor.save(builder.build())

        stored = await store.get_song(saved.id)
        assert stored is not None
        assert stored.title == "Catch the Moment"
        assert stored.stored_path == saved.stored_path

    @pytest.mark.asyncio
    async def test_name_collision_aborts(
        self, store: MetadataStore, music_dir: Path, make_flac: Callable[[str], Path]
    ) -> None:
        path = make_flac("download.flac")
        make_flac("Crossing Field - LiSA [1].flac")
        editor = SongEditorService(store, MetadataTaggerService())

        with pytest.raises(LibraryIOError):
            await editor.save(_new_song(path, music_dir))

        assert path.exists()
        assert await store.fetch_all() == []

    @pytest.mark.asyncio
    async def test_song_without_file_is_only_stored(self, store: MetadataStore) -> None:
        codec = AsyncMock()
        editor = SongEditorService(store, codec)

        saved = await editor.save(SongBuilder(title="Crossing Field").build())

        assert saved.id is not None
        codec.write_tags.assert_not_awaited()


class TestDelete:
    """Tests for delete."""

    @pytest.mark.asyncio
    async def test_delete_pending_song_raises(self, store: MetadataStore) -> None:
        editor = SongEditorService(store, AsyncMock())
        with pytest.raises(NoSongIdError):
            await editor.delete(SongBuilder(title="x").build())

    @pytest.mark.asyncio
    async def test_delete_with_file(
        self, store: MetadataStore, music_dir: Path, make_flac: Callable[[str], Path]
    ) -> None:
        editor = SongEditorService(store, MetadataTaggerService())
        saved = await editor.save(_new_song(make_flac("download.flac"), music_dir))

        await editor.delete(saved, remove_file=True)

        assert await store.get_song(saved.id) is None
        assert saved.path is not None and not saved.path.exists()


class TestNaming:
    """Tests for the naming helpers exposed to front-ends."""

    def test_planned_filename_and_template(self) -> None:
        editor = SongEditorService(AsyncMock(), AsyncMock())
        song = SongBuilder(title="Crossing Field", artists="LiSA").build()
        assert editor.planned_filename(song, "opus") == "Crossing Field - LiSA.opus"
        assert editor.download_template(song) == "Crossing Field - LiSA [Unknown].%(ext)s"

    @pytest.mark.asyncio
    async def test_suggestions(self, store: MetadataStore) -> None:
        editor = SongEditorService(store, AsyncMock())
        await editor.save(SongBuilder(title="x", genres="Rock; J-Pop").build())
        assert await editor.suggestions(RelationKind.GENRE) == ["J-Pop", "Rock"]
