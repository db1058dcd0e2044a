"""Tests for LibraryReconciler.

Hey future me - store, codec and lister are mocks here so each case states exactly what the
collection looks like. The real end-to-end pass is covered in test_song_editor_service.py.
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from muzik.application.services.library_reconciler import LibraryReconciler
from muzik.domain.entities import Pending, Persisted, Provenance, Song
from muzik.domain.exceptions import ConfigurationError, TagCodecError


def _reconciler(
    music_dir: Path,
    files: list[Path],
    tagged: dict[str, Song],
    matching_ids: set[int],
    database_only: list[Song],
) -> tuple[LibraryReconciler, AsyncMock]:
    lister = MagicMock()
    lister.list_audio_files.return_value = files

    async def read_tags(path: Path) -> Song:
        if path.name not in tagged:
            raise TagCodecError(path, "unrecognized audio format")
        return tagged[path.name]

    codec = AsyncMock()
    codec.read_tags.side_effect = read_tags

    async def is_song_in_database(song: Song) -> bool:
        return song.id in matching_ids

    store = AsyncMock()
    store.is_song_in_database.side_effect = is_song_in_database
    store.fetch_excluding_ids.return_value = database_only

    return LibraryReconciler(store, codec, lister, music_dir=music_dir), store


class TestReconcile:
    """Tests for the unified song list."""

    @pytest.mark.asyncio
    async def test_disk_songs_first_then_database_only(self, tmp_path: Path) -> None:
        a, b = tmp_path / "a.opus", tmp_path / "b.opus"
        gone = Song(title="Gone", identity=Persisted(2), stored_path="gone.opus", in_database=True)
        reconciler, store = _reconciler(
            tmp_path,
            files=[a, b],
            tagged={
                "a.opus": Song(title="A", identity=Persisted(1)),
                "b.opus": Song(title="B"),
            },
            matching_ids={1},
            database_only=[gone],
        )

        songs = await reconciler.reconcile()

        assert [s.title for s in songs] == ["A", "B", "Gone"]
        assert [s.provenance for s in songs] == [
            Provenance.BOTH,
            Provenance.DISK_ONLY,
            Provenance.DATABASE_ONLY,
        ]
        assert songs[0].stored_path == "a.opus"
        store.fetch_excluding_ids.assert_awaited_once_with({1}, tmp_path)

    @pytest.mark.asyncio
    async def test_total_is_files_plus_unmatched_rows(self, tmp_path: Path) -> None:
        files = [tmp_path / f"{i}.opus" for i in range(3)]
        tagged = {f.name: Song(title=f.name) for f in files}
        # the store resolves path against music_dir, the reconciler must clear it
        database_only = [
            Song(
                title=f"db{i}",
                identity=Persisted(10 + i),
                path=tmp_path / f"db{i}.opus",
                stored_path=f"db{i}.opus",
                in_database=True,
            )
            for i in range(2)
        ]
        reconciler, _store = _reconciler(tmp_path, files, tagged, set(), database_only)

        songs = await reconciler.reconcile()

        assert len(songs) == 5
        assert all(s.path is not None for s in songs[:3])
        for song in songs[3:]:
            assert song.path is None
            assert song.in_database is True
            assert song.provenance is Provenance.DATABASE_ONLY

    @pytest.mark.asyncio
    async def test_undecodable_file_is_skipped(self, tmp_path: Path) -> None:
        good, broken = tmp_path / "a.opus", tmp_path / "broken.mp3"
        reconciler, _store = _reconciler(
            tmp_path,
            files=[good, broken],
            tagged={"a.opus": Song(title="A")},
            matching_ids=set(),
            database_only=[],
        )

        result = await reconciler.reconcile_with_report()

        assert [s.title for s in result.songs] == ["A"]
        assert [s.path for s in result.skipped] == [broken]
        assert result.skipped[0].reason == "unrecognized audio format"

    @pytest.mark.asyncio
    async def test_stale_id_becomes_pending(self, tmp_path: Path) -> None:
        reconciler, store = _reconciler(
            tmp_path,
            files=[tmp_path / "a.opus"],
            tagged={"a.opus": Song(title="A", identity=Persisted(7))},
            matching_ids=set(),
            database_only=[],
        )

        result = await reconciler.reconcile_with_report()

        song = result.songs[0]
        assert isinstance(song.identity, Pending)
        assert song.provenance is Provenance.DISK_ONLY
        assert result.matched_ids == set()
        store.fetch_excluding_ids.assert_awaited_once_with(set(), tmp_path)

    @pytest.mark.asyncio
    async def test_explicit_directory_overrides_music_dir(self, tmp_path: Path) -> None:
        other = tmp_path / "other"
        reconciler, _store = _reconciler(tmp_path, [], {}, set(), [])

        await reconciler.reconcile(other)

        reconciler.lister.list_audio_files.assert_called_once_with(other, max_depth=1)

    @pytest.mark.asyncio
    async def test_no_directory_raises(self) -> None:
        reconciler = LibraryReconciler(AsyncMock(), AsyncMock(), MagicMock())
        with pytest.raises(ConfigurationError):
            await reconciler.reconcile()
