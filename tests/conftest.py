"""Shared pytest fixtures.

Hey future me - the store fixtures use a REAL SQLite file in tmp_path, not ":memory:". An
in-memory database lives per connection, and the pool may hand out a fresh one between
transactions, which makes rows vanish mid-test.
"""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
import pytest_asyncio

from muzik.config import LibrarySettings, Settings
from muzik.infrastructure.persistence import Database, MetadataStore

# Smallest FLAC mutagen accepts: "fLaC" + one (last) STREAMINFO block, 44.1 kHz stereo 16 bit,
# zero samples. Tags are added by mutagen on first write.
FLAC_BYTES = (
    b"fLaC"
    + b"\x80\x00\x00\x22"
    + b"\x10\x00\x10\x00"
    + b"\x00" * 6
    + b"\x0a\xc4\x42\xf0\x00\x00\x00\x00"
    + b"\x00" * 16
)


@pytest.fixture
def music_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "music"
    directory.mkdir()
    return directory


@pytest.fixture
def settings(music_dir: Path) -> Settings:
    return Settings(library=LibrarySettings(music_dir=music_dir))


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    db = Database(settings)
    await db.create_tables()
    try:
        yield db
    finally:
        await db.close()


@pytest_asyncio.fixture
async def store(database: Database) -> MetadataStore:
    return MetadataStore(database)


@pytest.fixture
def make_flac(music_dir: Path) -> Callable[[str], Path]:
    """Factory writing an empty, untagged FLAC file into music_dir."""

    def _make(name: str) -> Path:
        path = music_dir / name
        path.write_bytes(FLAC_BYTES)
        return path

    return _make
