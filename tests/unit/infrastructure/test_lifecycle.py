"""Tests for the application composition root."""

from collections.abc import Callable
from pathlib import Path

import pytest

from muzik.config import Settings
from muzik.domain.entities import SongBuilder
from muzik.infrastructure.lifecycle import open_library


class TestOpenLibrary:
    """Tests for open_library()."""

    @pytest.mark.asyncio
    async def test_creates_database_in_music_dir(self, settings: Settings, music_dir: Path) -> None:
        async with open_library(settings, configure_logs=False) as library:
            assert library.music_dir == music_dir
            assert await library.reconciler.reconcile() == []
        assert (music_dir / "database.sqlite").exists()

    @pytest.mark.asyncio
    async def test_services_share_one_store(
        self, settings: Settings, music_dir: Path, make_flac: Callable[[str], Path]
    ) -> None:
        async with open_library(settings, configure_logs=False) as library:
            song = SongBuilder(
                title="Crossing Field",
                artists="LiSA",
                path=make_flac("download.flac"),
                music_dir=music_dir,
            ).build()
            saved = await library.editor.save(song)

            songs = await library.reconciler.reconcile()

        assert [s.id for s in songs] == [saved.id]
        assert songs[0].in_database is True
