"""Unit tests for the Song entity, its identity and the SongBuilder."""

from pathlib import Path

import pytest

from muzik.domain.entities import (
    Artist,
    Pending,
    Persisted,
    Provenance,
    RelationKind,
    Song,
    SongBuilder,
    SongSource,
    split_names,
)
from muzik.domain.exceptions import ValidationError


class TestIdentity:
    """Tests for the Pending / Persisted identity."""

    def test_new_song_is_pending(self) -> None:
        song = Song(title="Crossing Field")
        assert isinstance(song.identity, Pending)
        assert song.id is None
        assert song.is_persisted is False

    def test_persisted_exposes_id(self) -> None:
        song = Song(title="Crossing Field", identity=Persisted(7))
        assert song.id == 7
        assert song.is_persisted is True

    @pytest.mark.parametrize("value", [0, -1])
    def test_persisted_rejects_non_positive_ids(self, value: int) -> None:
        with pytest.raises(ValidationError):
            Persisted(value)

    def test_with_identity_marks_song_as_stored(self) -> None:
        song = Song(title="Crossing Field")
        persisted = song.with_identity(3)
        assert persisted.id == 3
        assert persisted.in_database is True
        # the pending song is untouched
        assert song.id is None


class TestSplitNames:
    """Tests for multi-valued field normalization."""

    def test_splits_semicolon_string(self) -> None:
        assert split_names("LiSA; Aimer") == ["LiSA", "Aimer"]

    def test_drops_empty_entries_and_duplicates(self) -> None:
        assert split_names("LiSA; ; Aimer; LiSA") == ["LiSA", "Aimer"]

    def test_keeps_case_distinct_names(self) -> None:
        assert split_names(["LiSA", "lisa"]) == ["LiSA", "lisa"]

    def test_none_is_empty(self) -> None:
        assert split_names(None) == []


class TestDisplayStrings:
    """Tests for the textual values used by listings and filenames."""

    def test_missing_values_render_unknown(self) -> None:
        song = Song(title="")
        assert song.title_string == "Unknown"
        assert song.artists_string == "Unknown"
        assert song.id_string == "Unknown"
        assert song.source_id_string == "Unknown"

    def test_artists_are_joined(self) -> None:
        song = Song(title="x", artists=[Artist("LiSA"), Artist("Aimer")])
        assert song.artists_string == "LiSA; Aimer"
        assert song.names(RelationKind.ARTIST) == ["LiSA", "Aimer"]


class TestPaths:
    """Tests for on-disk vs stored paths and provenance."""

    def test_database_path_is_relative_posix(self, tmp_path: Path) -> None:
        song = Song(title="x", path=tmp_path / "a.opus", music_dir=tmp_path)
        assert song.database_path == "a.opus"

    def test_database_path_falls_back_to_file_name(self, tmp_path: Path) -> None:
        song = Song(title="x", path=tmp_path / "a.opus", music_dir=tmp_path / "other")
        assert song.database_path == "a.opus"

    def test_database_only_record_keeps_stored_path(self) -> None:
        song = Song(title="x", stored_path="sub/a.opus")
        assert song.database_path == "sub/a.opus"
        assert song.file_name == "a.opus"

    def test_provenance(self, tmp_path: Path) -> None:
        assert Song(title="x").provenance is Provenance.DATABASE_ONLY
        assert Song(title="x", path=tmp_path / "a.mp3").provenance is Provenance.DISK_ONLY
        both = Song(title="x", path=tmp_path / "a.mp3", in_database=True)
        assert both.provenance is Provenance.BOTH

    def test_identify_status_line(self, tmp_path: Path) -> None:
        path = tmp_path / "a.mp3"
        path.write_bytes(b"")
        song = Song(title="x", identity=Persisted(4), path=path, in_database=True)
        assert song.identify() == "Database : 4 | Local Exists"
        assert Song(title="x").identify() == "Not in database | Local Not Exists"


class TestSongBuilder:
    """Tests for SongBuilder validation."""

    def test_build_pending_song(self) -> None:
        song = SongBuilder(title=" Crossing Field ", artists="LiSA; LiSA").build()
        assert song.title == "Crossing Field"
        assert isinstance(song.identity, Pending)
        assert [a.name for a in song.artists] == ["LiSA"]
        assert song.source is SongSource.LOCAL

    def test_source_id_implies_youtube(self) -> None:
        song = SongBuilder(title="x", source_id="abc123").build()
        assert song.source is SongSource.YOUTUBE

    def test_empty_title_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SongBuilder(title="   ").build()

    def test_invalid_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SongBuilder(title="x", id=0).build()

    def test_from_song_round_trips_fields(self) -> None:
        song = SongBuilder(
            title="x", id=2, artists=["A"], genres="Rock; Pop", source_id="yt"
        ).build()
        rebuilt = SongBuilder.from_song(song).build()
        assert rebuilt == song
