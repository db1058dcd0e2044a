"""SQLAlchemy ORM models for muzik.

Hey future me - table and column names match the schema that existing muzik databases already
have on disk (song, artist, album, genre, youtube_playlist_id and the four *_junction tables).
Don't rename them; the Python attribute names are what's free to differ.
"""

from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Yo, Base is THE foundation of all ORM models! DeclarativeBase is SQLAlchemy 2.0 style.
# ALL models inherit from this - it manages the shared metadata registry that create_tables()
# and alembic autogenerate read from. Don't create multiple Base classes.
class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Listen up, SongModel is the scalar row of a song. Relations live ONLY in the junction tables.
# source_id maps to the legacy "youtube_id" column and is UNIQUE when present (SQLite allows any
# number of NULLs in a unique column, so local files without a source id are fine). path is the
# location relative to the music directory, added by the third migration, hence nullable.
class SongModel(Base):
    """SQLAlchemy model for Song entity."""

    __tablename__ = "song"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    source_id: Mapped[str | None] = mapped_column(
        "youtube_id", Text, nullable=True, unique=True
    )
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    path: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<SongModel(id={self.id}, title={self.title!r}, path={self.path!r})>"


# Hey future me - the four named tables all expose the value as `name` in Python even though
# genre and youtube_playlist_id use different column names. That keeps find-or-create generic.
# UNIQUE on the value column + exact (BINARY) comparison = case-sensitive dedup.
class ArtistModel(Base):
    """SQLAlchemy model for Artist entity."""

    __tablename__ = "artist"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)


class AlbumModel(Base):
    """SQLAlchemy model for Album entity."""

    __tablename__ = "album"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)


class GenreModel(Base):
    """SQLAlchemy model for Genre entity."""

    __tablename__ = "genre"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column("genre", Text, nullable=False, unique=True)


class PlaylistReferenceModel(Base):
    """SQLAlchemy model for an external (YouTube) playlist identifier."""

    __tablename__ = "youtube_playlist_id"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        "youtube_playlist_id", Text, nullable=False, unique=True
    )


# Yo, junction rows carry a surrogate "key" and NO composite unique constraint on
# (song_id, other_id). Linking the same pair twice really creates two rows - the repository's
# replace_links() avoids that by deduplicating names, link() itself never checks.
class SongArtistJunctionModel(Base):
    """song <-> artist link."""

    __tablename__ = "song_artist_junction"

    key: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    song_id: Mapped[int] = mapped_column(ForeignKey("song.id"), nullable=False, index=True)
    other_id: Mapped[int] = mapped_column(
        "artist_id", ForeignKey("artist.id"), nullable=False
    )


class SongAlbumJunctionModel(Base):
    """song <-> album link."""

    __tablename__ = "song_album_junction"

    key: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    song_id: Mapped[int] = mapped_column(ForeignKey("song.id"), nullable=False, index=True)
    other_id: Mapped[int] = mapped_column(
        "album_id", ForeignKey("album.id"), nullable=False
    )


class SongGenreJunctionModel(Base):
    """song <-> genre link."""

    __tablename__ = "song_genre_junction"

    key: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    song_id: Mapped[int] = mapped_column(ForeignKey("song.id"), nullable=False, index=True)
    other_id: Mapped[int] = mapped_column(
        "genre_id", ForeignKey("genre.id"), nullable=False
    )


class SongPlaylistReferenceJunctionModel(Base):
    """song <-> youtube_playlist_id link."""

    __tablename__ = "song_youtube_playlist_id_junction"

    key: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    song_id: Mapped[int] = mapped_column(ForeignKey("song.id"), nullable=False, index=True)
    other_id: Mapped[int] = mapped_column(
        "youtube_playlist_id_id", ForeignKey("youtube_playlist_id.id"), nullable=False
    )


NamedModel = ArtistModel | AlbumModel | GenreModel | PlaylistReferenceModel
JunctionModel = (
    SongArtistJunctionModel
    | SongAlbumJunctionModel
    | SongGenreJunctionModel
    | SongPlaylistReferenceJunctionModel
)
