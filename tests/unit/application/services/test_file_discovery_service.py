"""Tests for FileDiscoveryService."""

from pathlib import Path

import pytest

from muzik.application.services.file_discovery_service import FileDiscoveryService
from muzik.domain.exceptions import LibraryIOError


@pytest.fixture
def collection(tmp_path: Path) -> Path:
    (tmp_path / "b.opus").write_bytes(b"")
    (tmp_path / "A.MP3").write_bytes(b"")
    (tmp_path / "cover.jpg").write_bytes(b"")
    (tmp_path / "database.sqlite").write_bytes(b"")
    sub = tmp_path / "sub"
    sub.mkdir()
    (sub / "c.flac").write_bytes(b"")
    return tmp_path


class TestFileDiscoveryService:
    """Tests for listing audio files."""

    def test_lists_top_level_audio_only(self, collection: Path) -> None:
        files = FileDiscoveryService().list_audio_files(collection)
        assert [p.name for p in files] == ["A.MP3", "b.opus"]

    def test_deeper_scan(self, collection: Path) -> None:
        files = FileDiscoveryService().list_audio_files(collection, max_depth=2)
        assert [p.name for p in files] == ["A.MP3", "b.opus", "c.flac"]

    def test_custom_extensions(self, collection: Path) -> None:
        files = FileDiscoveryService(frozenset({".OPUS"})).list_audio_files(collection)
        assert [p.name for p in files] == ["b.opus"]

    def test_missing_directory_raises(self, tmp_path: Path) -> None:
        with pytest.raises(LibraryIOError):
            FileDiscoveryService().list_audio_files(tmp_path / "missing")

    def test_is_audio_file(self) -> None:
        service = FileDiscoveryService()
        assert service.is_audio_file(Path("x.Flac")) is True
        assert service.is_audio_file(Path("x.txt")) is False
