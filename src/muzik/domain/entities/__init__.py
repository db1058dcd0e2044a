"""Domain entities."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path, PurePosixPath

from muzik.domain.exceptions import ValidationError

UNKNOWN = "Unknown"
NAME_SEPARATOR = "; "


# Hey future me, this is the tagged identity of a Song! A song is either Pending (staging value,
# no row yet) or Persisted(id) (written through the store at least once). Never use 0 or -1 as a
# "new" marker - check isinstance(song.identity, Persisted) or song.is_persisted instead.
@dataclass(frozen=True)
class Pending:
    """Identity of a song that has no database row yet."""

    def __str__(self) -> str:
        return "pending"


@dataclass(frozen=True)
class Persisted:
    """Identity of a song that has a database row."""

    value: int

    def __post_init__(self) -> None:
        if self.value <= 0:
            raise ValidationError(f"Invalid song id: {self.value}")

    def __str__(self) -> str:
        return str(self.value)


SongIdentity = Pending | Persisted


class SongSource(str, Enum):
    """Where the audio file originally came from."""

    LOCAL = "local"
    YOUTUBE = "youtube"


class Provenance(str, Enum):
    """Which side(s) of the reconciliation a song record was seen on."""

    DISK_ONLY = "disk_only"
    DATABASE_ONLY = "database_only"
    BOTH = "both"


class RelationKind(str, Enum):
    """The four many-to-many relations hanging off a song."""

    ARTIST = "artist"
    ALBUM = "album"
    GENRE = "genre"
    PLAYLIST_REFERENCE = "playlist_reference"


# Yo, these are deduplicated by EXACT name (case-sensitive) in the store. "LiSA" and "lisa" are
# two different artists on purpose - don't lowercase here.
@dataclass(frozen=True)
class NamedEntity:
    """A simple (id, name) pair; id is None until the store has resolved it."""

    name: str
    id: int | None = None


@dataclass(frozen=True)
class Artist(NamedEntity):
    """Artist linked to a song."""


@dataclass(frozen=True)
class Album(NamedEntity):
    """Album linked to a song."""


@dataclass(frozen=True)
class Genre(NamedEntity):
    """Genre linked to a song."""


@dataclass(frozen=True)
class PlaylistReference(NamedEntity):
    """External playlist identifier a song was pulled from."""


RELATION_ENTITIES: dict[RelationKind, type[NamedEntity]] = {
    RelationKind.ARTIST: Artist,
    RelationKind.ALBUM: Album,
    RelationKind.GENRE: Genre,
    RelationKind.PLAYLIST_REFERENCE: PlaylistReference,
}


def split_names(value: str | Iterable[str] | None) -> list[str]:
    """Normalize a multi-valued field into a list of unique, trimmed names.

    Accepts either an iterable of names or a single "A; B" string (the form
    editors and tags use). Empty entries are dropped, first occurrence wins.

    Example:
        >>> split_names("LiSA; ; Aimer; LiSA")
        ['LiSA', 'Aimer']
    """
    if value is None:
        return []
    raw = value.split(";") if isinstance(value, str) else list(value)
    names: list[str] = []
    for item in raw:
        name = item.strip()
        if name and name not in names:
            names.append(name)
    return names


def _join(entities: Sequence[NamedEntity]) -> str:
    if not entities:
        return UNKNOWN
    return NAME_SEPARATOR.join(entity.name for entity in entities)


# Listen up, Song is THE core entity - one track, persisted or transient. It's built by the
# scanner (from tags), by the store (from rows) or by SongBuilder (from user input). path is the
# on-disk location and is None for database-only records; stored_path is the relative string
# kept in the song.path column. Relations are plain lists, order is not meaningful.
@dataclass
class Song:
    """One track of the collection."""

    title: str
    identity: SongIdentity = field(default_factory=Pending)
    artists: list[Artist] = field(default_factory=list)
    albums: list[Album] = field(default_factory=list)
    genres: list[Genre] = field(default_factory=list)
    playlist_references: list[PlaylistReference] = field(default_factory=list)
    source_id: str | None = None
    thumbnail_url: str | None = None
    path: Path | None = None
    music_dir: Path | None = None
    stored_path: str | None = None
    in_database: bool = False
    source: SongSource = SongSource.LOCAL

    @property
    def id(self) -> int | None:
        """Database id or None while pending."""
        if isinstance(self.identity, Persisted):
            return self.identity.value
        return None

    @property
    def is_persisted(self) -> bool:
        return isinstance(self.identity, Persisted)

    @property
    def provenance(self) -> Provenance:
        """Derived provenance: on disk, database only, or both."""
        if self.path is None:
            return Provenance.DATABASE_ONLY
        if self.in_database:
            return Provenance.BOTH
        return Provenance.DISK_ONLY

    def related(self, kind: RelationKind) -> list[NamedEntity]:
        """Return the linked entities for one relation."""
        if kind is RelationKind.ARTIST:
            return list(self.artists)
        if kind is RelationKind.ALBUM:
            return list(self.albums)
        if kind is RelationKind.GENRE:
            return list(self.genres)
        return list(self.playlist_references)

    def names(self, kind: RelationKind) -> list[str]:
        return [entity.name for entity in self.related(kind)]

    @property
    def title_string(self) -> str:
        return self.title if self.title else UNKNOWN

    @property
    def artists_string(self) -> str:
        return _join(self.artists)

    @property
    def albums_string(self) -> str:
        return _join(self.albums)

    @property
    def genres_string(self) -> str:
        return _join(self.genres)

    @property
    def playlist_references_string(self) -> str:
        return _join(self.playlist_references)

    @property
    def id_string(self) -> str:
        return str(self.id) if self.id is not None else UNKNOWN

    @property
    def source_id_string(self) -> str:
        return self.source_id if self.source_id else UNKNOWN

    @property
    def file_name(self) -> str | None:
        """File name of the on-disk path, or of the stored path for database-only records."""
        if self.path is not None:
            return self.path.name
        if self.stored_path:
            return PurePosixPath(self.stored_path).name
        return None

    @property
    def database_path(self) -> str | None:
        """Path relative to the collection root, as stored in the database.

        Hey future me - always POSIX separators so a database copied between
        Linux and Windows machines keeps matching. Falls back to the bare
        file name when the file sits outside music_dir.
        """
        if self.path is None:
            return self.stored_path
        if self.music_dir is not None:
            try:
                return self.path.relative_to(self.music_dir).as_posix()
            except ValueError:
                pass
        return self.path.name

    def identify(self) -> str:
        """Short status line shown next to a song in listings."""
        exists = self.path is not None and self.path.exists()
        local = "Local Exists" if exists else "Local Not Exists"
        if self.in_database and self.id is not None:
            return f"Database : {self.id} | {local}"
        return f"Not in database | {local}"

    def with_identity(self, song_id: int) -> "Song":
        """Copy of this song marked as persisted under song_id."""
        return replace(self, identity=Persisted(song_id), in_database=True)


# Hey future me, SongBuilder replaces the old chained set_x() calls that cloned self on every
# step. Collect fields as plain attributes, then call build() ONCE - that's where validation
# happens. Multi-valued fields accept either a list or an "A; B" string.
@dataclass
class SongBuilder:
    """Explicit builder for Song records."""

    title: str | None = None
    id: int | None = None
    artists: str | Iterable[str] | None = None
    albums: str | Iterable[str] | None = None
    genres: str | Iterable[str] | None = None
    playlist_references: str | Iterable[str] | None = None
    source_id: str | None = None
    thumbnail_url: str | None = None
    path: Path | None = None
    music_dir: Path | None = None
    stored_path: str | None = None
    in_database: bool = False
    source: SongSource | None = None

    @classmethod
    def from_song(cls, song: Song) -> "SongBuilder":
        """Start an edit from an existing song."""
        return cls(
            title=song.title,
            id=song.id,
            artists=song.names(RelationKind.ARTIST),
            albums=song.names(RelationKind.ALBUM),
            genres=song.names(RelationKind.GENRE),
            playlist_references=song.names(RelationKind.PLAYLIST_REFERENCE),
            source_id=song.source_id,
            thumbnail_url=song.thumbnail_url,
            path=song.path,
            music_dir=song.music_dir,
            stored_path=song.stored_path,
            in_database=song.in_database,
            source=song.source,
        )

    def build(self) -> Song:
        """Validate collected fields and create the Song."""
        title = (self.title or "").strip()
        if not title:
            raise ValidationError("Song title cannot be empty")

        identity: SongIdentity
        if self.id is None:
            identity = Pending()
        else:
            if self.id <= 0:
                raise ValidationError(f"Invalid song id: {self.id}")
            identity = Persisted(self.id)

        source_id = (self.source_id or "").strip() or None
        thumbnail_url = (self.thumbnail_url or "").strip() or None
        source = self.source
        if source is None:
            source = SongSource.YOUTUBE if source_id else SongSource.LOCAL

        return Song(
            title=title,
            identity=identity,
            artists=[Artist(name) for name in split_names(self.artists)],
            albums=[Album(name) for name in split_names(self.albums)],
            genres=[Genre(name) for name in split_names(self.genres)],
            playlist_references=[
                PlaylistReference(name) for name in split_names(self.playlist_references)
            ],
            source_id=source_id,
            thumbnail_url=thumbnail_url,
            path=self.path,
            music_dir=self.music_dir,
            stored_path=self.stored_path,
            in_database=self.in_database,
            source=source,
        )


__all__ = [
    "UNKNOWN",
    "NAME_SEPARATOR",
    "Pending",
    "Persisted",
    "SongIdentity",
    "SongSource",
    "Provenance",
    "RelationKind",
    "NamedEntity",
    "Artist",
    "Album",
    "Genre",
    "PlaylistReference",
    "RELATION_ENTITIES",
    "split_names",
    "Song",
    "SongBuilder",
]
