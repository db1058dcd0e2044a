"""Metadata Tagger Service - reads and writes the embedded tags of audio files.

Hey future me - the file itself carries the song's identity across reconciliation! Besides the
usual title/artist/album/genre fields we keep two custom keys inside every file:
- the database id (canonical key "DBID", older builds wrote "ID")
- the streaming source id ("YTID")
When a file is scanned, its DBID is how we find the row it belongs to.

SUPPORTED FORMATS:
- MP3 / WAV (ID3v2.4, custom keys as TXXX frames)
- FLAC / OGG / OPUS (Vorbis comments, custom keys as plain comments)
- M4A / MP4 (MP4 atoms, custom keys as ----:com.apple.iTunes:<KEY> freeform atoms)
- WMA (ASF attributes, custom keys as plain attributes)

TAG MAPPING:

| Field  | ID3  | Vorbis | MP4  | ASF           |
|--------|------|--------|------|---------------|
| title  | TIT2 | TITLE  | ©nam | Title         |
| artist | TPE1 | ARTIST | ©ART | Author        |
| album  | TALB | ALBUM  | ©alb | WM/AlbumTitle |
| genre  | TCON | GENRE  | ©gen | WM/Genre      |

Multi-valued fields are written as one value per entry (never joined), and read tolerantly:
an entry "A; B" is split into two names.

ERROR HANDLING:
- read_tags: anything mutagen can't open raises TagCodecError (the reconciler skips that file)
- write_tags: never raises for format problems, returns TaggingResult(success=False)
- embed_artwork: network or format errors are logged, returns False
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import httpx
import mutagen
from mutagen import MutagenError
from mutagen.asf import ASF
from mutagen.flac import FLAC, Picture
from mutagen.id3 import APIC, ID3, TALB, TCON, TIT2, TPE1, TXXX
from mutagen.mp3 import MP3
from mutagen.mp4 import MP4, MP4Cover, MP4FreeForm
from mutagen.oggopus import OggOpus
from mutagen.oggvorbis import OggVorbis

from muzik.config import TaggingSettings
from muzik.domain.entities import (
    UNKNOWN,
    Album,
    Artist,
    Genre,
    Pending,
    Persisted,
    Song,
    SongIdentity,
    SongSource,
    split_names,
)
from muzik.domain.exceptions import TagCodecError
from muzik.domain.ports import ITagCodec, TaggingResult

logger = logging.getLogger(__name__)


# Hey future me, every container stores the same four fields + custom keys differently. These
# small accessors hide that so read/write logic is written ONCE. They operate on an already
# opened mutagen object's .tags - opening and saving is the caller's job.
class _TagAccess(ABC):
    format_name: str = "unknown"

    def __init__(self, tags: Any) -> None:
        self.tags = tags

    @abstractmethod
    def get(self, field: str) -> list[str]: ...

    @abstractmethod
    def set(self, field: str, values: list[str]) -> None: ...

    @abstractmethod
    def get_custom(self, key: str) -> str | None: ...

    @abstractmethod
    def set_custom(self, key: str, value: str) -> None: ...

    @abstractmethod
    def delete_custom(self, key: str) -> bool: ...


class _ID3Access(_TagAccess):
    format_name = "id3"
    FRAMES: dict[str, Any] = {"title": TIT2, "artist": TPE1, "album": TALB, "genre": TCON}

    def get(self, field: str) -> list[str]:
        frame_id = self.FRAMES[field].__name__
        return [str(text) for frame in self.tags.getall(frame_id) for text in frame.text]

    def set(self, field: str, values: list[str]) -> None:
        frame_cls = self.FRAMES[field]
        self.tags.delall(frame_cls.__name__)
        if values:
            self.tags.add(frame_cls(encoding=3, text=values))

    def get_custom(self, key: str) -> str | None:
        frames = self.tags.getall(f"TXXX:{key}")
        if frames and frames[0].text:
            return str(frames[0].text[0])
        return None

    def set_custom(self, key: str, value: str) -> None:
        self.tags.delall(f"TXXX:{key}")
        self.tags.add(TXXX(encoding=3, desc=key, text=[value]))

    def delete_custom(self, key: str) -> bool:
        existed = bool(self.tags.getall(f"TXXX:{key}"))
        self.tags.delall(f"TXXX:{key}")
        return existed


class _VorbisAccess(_TagAccess):
    format_name = "vorbis"

    def get(self, field: str) -> list[str]:
        return self._values(field)

    def _values(self, key: str) -> list[str]:
        if key not in self.tags:
            return []
        return [str(value) for value in self.tags[key]]

    def set(self, field: str, values: list[str]) -> None:
        # Vorbis keys are case-insensitive, uppercase is the convention
        key = field.upper()
        if values:
            self.tags[key] = values
        elif key in self.tags:
            del self.tags[key]

    def get_custom(self, key: str) -> str | None:
        values = self._values(key)
        return values[0] if values else None

    def set_custom(self, key: str, value: str) -> None:
        self.tags[key] = [value]

    def delete_custom(self, key: str) -> bool:
        if key in self.tags:
            del self.tags[key]
            return True
        return False


class _MP4Access(_TagAccess):
    format_name = "mp4"
    ATOMS = {"title": "©nam", "artist": "©ART", "album": "©alb", "genre": "©gen"}
    FREEFORM_PREFIX = "----:com.apple.iTunes:"

    def get(self, field: str) -> list[str]:
        return [str(value) for value in self.tags.get(self.ATOMS[field], [])]

    def set(self, field: str, values: list[str]) -> None:
        atom = self.ATOMS[field]
        if values:
            self.tags[atom] = values
        elif atom in self.tags:
            del self.tags[atom]

    def get_custom(self, key: str) -> str | None:
        values = self.tags.get(self.FREEFORM_PREFIX + key, [])
        if not values:
            return None
        return bytes(values[0]).decode("utf-8", errors="replace")

    def set_custom(self, key: str, value: str) -> None:
        self.tags[self.FREEFORM_PREFIX + key] = [MP4FreeForm(value.encode("utf-8"))]

    def delete_custom(self, key: str) -> bool:
        atom = self.FREEFORM_PREFIX + key
        if atom in self.tags:
            del self.tags[atom]
            return True
        return False


class _ASFAccess(_TagAccess):
    format_name = "asf"
    ATTRIBUTES = {
        "title": "Title",
        "artist": "Author",
        "album": "WM/AlbumTitle",
        "genre": "WM/Genre",
    }

    def get(self, field: str) -> list[str]:
        return [str(value) for value in self.tags.get(self.ATTRIBUTES[field], [])]

    def set(self, field: str, values: list[str]) -> None:
        attribute = self.ATTRIBUTES[field]
        if values:
            self.tags[attribute] = values
        elif attribute in self.tags:
            del self.tags[attribute]

    def get_custom(self, key: str) -> str | None:
        values = self.tags.get(key, [])
        return str(values[0]) if values else None

    def set_custom(self, key: str, value: str) -> None:
        self.tags[key] = [value]

    def delete_custom(self, key: str) -> bool:
        if key in self.tags:
            del self.tags[key]
            return True
        return False


def _open(path: Path) -> Any:
    """Open a file with mutagen, raising TagCodecError on anything unusable."""
    if not path.is_file():
        raise TagCodecError(path, "file not found")
    try:
        audio = mutagen.File(str(path))
    except (MutagenError, OSError) as e:
        raise TagCodecError(path, str(e)) from e
    if audio is None:
        raise TagCodecError(path, "unrecognized audio format")
    return audio


def _access(audio: Any, path: Path, create: bool) -> _TagAccess | None:
    """Pick the accessor for an opened file; None when it has no tags and create is False."""
    if audio.tags is None:
        if not create:
            return None
        try:
            audio.add_tags()
        except (MutagenError, NotImplementedError) as e:
            raise TagCodecError(path, f"cannot create tags: {e}") from e

    if isinstance(audio, MP4):
        return _MP4Access(audio.tags)
    if isinstance(audio, (FLAC, OggVorbis, OggOpus)):
        return _VorbisAccess(audio.tags)
    if isinstance(audio, ASF):
        return _ASFAccess(audio.tags)
    if isinstance(audio.tags, ID3):
        return _ID3Access(audio.tags)
    raise TagCodecError(path, f"unsupported tag type {type(audio.tags).__name__}")


def _names(access: _TagAccess | None, field: str) -> list[str]:
    if access is None:
        return []
    names: list[str] = []
    for value in access.get(field):
        for name in split_names(value):
            if name not in names:
                names.append(name)
    return names


def _parse_id(value: str | None, key: str, path: Path) -> int | None:
    if value is None:
        return None
    try:
        parsed = int(value.strip())
    except ValueError:
        logger.warning("Ignoring non-numeric %s tag %r in %s", key, value, path)
        return None
    if parsed <= 0:
        logger.warning("Ignoring invalid %s tag %r in %s", key, value, path)
        return None
    return parsed


class MetadataTaggerService(ITagCodec):
    """Tag codec backed by mutagen.

    Hey future me - mutagen is BLOCKING file I/O, so every public method hops to a worker thread
    with asyncio.to_thread. Never call the _sync helpers directly from async code.

    Usage:
        tagger = MetadataTaggerService(settings.tagging)
        song = await tagger.read_tags(Path("/music/Crossing Field - LiSA [1].opus"))
        result = await tagger.write_tags(path, song)
        await tagger.embed_artwork(path, song.thumbnail_url)
    """

    def __init__(self, tagging: TaggingSettings | None = None) -> None:
        self.tagging = tagging or TaggingSettings()
        self._http_client: httpx.AsyncClient | None = None

    @property
    def id_keys(self) -> list[str]:
        """Canonical id key first, then the legacy keys."""
        return [self.tagging.id_tag_key, *self.tagging.legacy_id_tag_keys]

    # =========================================================================
    # READ
    # =========================================================================

    async def read_tags(self, path: Path) -> Song:
        """Decode the embedded tags of a file into a transient Song."""
        return await asyncio.to_thread(self._read_sync, path)

    def _read_sync(self, path: Path) -> Song:
        audio = _open(path)
        access = _access(audio, path, create=False)

        titles = access.get("title") if access is not None else []
        title = titles[0].strip() if titles and titles[0].strip() else UNKNOWN

        source_id = None
        if access is not None:
            raw_source = access.get_custom(self.tagging.source_id_tag_key)
            source_id = raw_source.strip() if raw_source and raw_source.strip() else None

        return Song(
            title=title,
            identity=self._resolve_identity(access, path),
            artists=[Artist(name) for name in _names(access, "artist")],
            albums=[Album(name) for name in _names(access, "album")],
            genres=[Genre(name) for name in _names(access, "genre")],
            source_id=source_id,
            path=path,
            source=SongSource.YOUTUBE if source_id else SongSource.LOCAL,
        )

    # Yo, id resolution order: canonical key, then each legacy key. If canonical and a legacy
    # key disagree the canonical one wins - but log it, it usually means a file was copied
    # between two databases.
    def _resolve_identity(self, access: _TagAccess | None, path: Path) -> SongIdentity:
        if access is None:
            return Pending()
        found: list[tuple[str, int]] = []
        for key in self.id_keys:
            value = _parse_id(access.get_custom(key), key, path)
            if value is not None:
                found.append((key, value))
        if not found:
            return Pending()

        key, song_id = found[0]
        for other_key, other_id in found[1:]:
            if other_id != song_id:
                logger.warning(
                    "Conflicting id tags in %s: %s=%s, %s=%s (using %s)",
                    path,
                    key,
                    song_id,
                    other_key,
                    other_id,
                    key,
                )
        return Persisted(song_id)

    async def read_identifier_keys(self, path: Path) -> dict[str, str | None]:
        """Raw values of the canonical and legacy id keys (None when absent)."""
        return await asyncio.to_thread(self._read_identifier_keys_sync, path)

    def _read_identifier_keys_sync(self, path: Path) -> dict[str, str | None]:
        access = _access(_open(path), path, create=False)
        return {
            key: access.get_custom(key) if access is not None else None
            for key in self.id_keys
        }

    # =========================================================================
    # WRITE
    # =========================================================================

    async def write_tags(self, path: Path, song: Song) -> TaggingResult:
        """Write title, relations, source id and database id into a file.

        Hey future me - only the canonical id key is ever written; legacy keys are removed in
        the same save so a file never carries two ids. A Pending song removes every id key.
        """
        try:
            return await asyncio.to_thread(self._write_sync, path, song)
        except TagCodecError as e:
            logger.warning("Tagging failed for %s: %s", path, e.reason)
            return TaggingResult(success=False, file_path=str(path), error=e.reason)
        except (MutagenError, OSError) as e:
            logger.error("Error tagging %s: %s", path, e, exc_info=True)
            return TaggingResult(success=False, file_path=str(path), error=str(e))

    def _write_sync(self, path: Path, song: Song) -> TaggingResult:
        audio = _open(path)
        access = _access(audio, path, create=True)
        assert access is not None
        fields_written: list[str] = []

        access.set("title", [song.title_string])
        fields_written.append("title")
        for field, names in (
            ("artist", [a.name for a in song.artists]),
            ("album", [a.name for a in song.albums]),
            ("genre", [g.name for g in song.genres]),
        ):
            access.set(field, names)
            fields_written.append(field)

        if song.source_id:
            access.set_custom(self.tagging.source_id_tag_key, song.source_id)
            fields_written.append("source_id")
        else:
            access.delete_custom(self.tagging.source_id_tag_key)

        if song.id is not None:
            self._set_identifier(access, song.id)
            fields_written.append("id")
        else:
            # A pending song has no row, so the file must not claim one
            for key in self.id_keys:
                access.delete_custom(key)

        audio.save()
        logger.debug("Wrote %s to %s", ", ".join(fields_written), path)
        return TaggingResult(
            success=True,
            file_path=str(path),
            format=access.format_name,
            fields_written=fields_written,
        )

    def _set_identifier(self, access: _TagAccess, song_id: int) -> None:
        access.set_custom(self.tagging.id_tag_key, str(song_id))
        for legacy_key in self.tagging.legacy_id_tag_keys:
            if legacy_key != self.tagging.id_tag_key:
                access.delete_custom(legacy_key)

    async def write_identifier(self, path: Path, song_id: int) -> TaggingResult:
        """Rewrite only the id tag (canonical key, legacy keys removed)."""
        try:
            return await asyncio.to_thread(self._write_identifier_sync, path, song_id)
        except TagCodecError as e:
            return TaggingResult(success=False, file_path=str(path), error=e.reason)
        except (MutagenError, OSError) as e:
            logger.error("Error writing id tag to %s: %s", path, e)
            return TaggingResult(success=False, file_path=str(path), error=str(e))

    def _write_identifier_sync(self, path: Path, song_id: int) -> TaggingResult:
        audio = _open(path)
        access = _access(audio, path, create=True)
        assert access is not None
        self._set_identifier(access, song_id)
        audio.save()
        return TaggingResult(
            success=True,
            file_path=str(path),
            format=access.format_name,
            fields_written=["id"],
        )

    # =========================================================================
    # ARTWORK
    # =========================================================================

    async def embed_artwork(
        self, file_path: Path, artwork_url: str | None = None, artwork_data: bytes | None = None
    ) -> bool:
        """Embed a cover image (downloaded from artwork_url or given as bytes).

        Returns:
            True if artwork was embedded successfully
        """
        if artwork_data is None and artwork_url:
            artwork_data = await self._download_artwork(artwork_url)
        if not artwork_data:
            logger.debug("No artwork data for %s", file_path)
            return False

        mime_type = self._detect_image_mime(artwork_data)
        try:
            return await asyncio.to_thread(
                self._embed_artwork_sync, file_path, artwork_data, mime_type
            )
        except (TagCodecError, MutagenError, OSError) as e:
            logger.error("Error embedding artwork in %s: %s", file_path, e)
            return False

    def _embed_artwork_sync(self, file_path: Path, data: bytes, mime_type: str) -> bool:
        audio = _open(file_path)
        if audio.tags is None:
            audio.add_tags()

        if isinstance(audio, FLAC):
            picture = Picture()
            picture.type = 3  # Front cover
            picture.mime = mime_type
            picture.desc = "Cover"
            picture.data = data
            audio.clear_pictures()
            audio.add_picture(picture)
        elif isinstance(audio, MP4):
            cover_format = (
                MP4Cover.FORMAT_PNG if mime_type == "image/png" else MP4Cover.FORMAT_JPEG
            )
            audio.tags["covr"] = [MP4Cover(data, imageformat=cover_format)]
        elif isinstance(audio, MP3) or isinstance(audio.tags, ID3):
            audio.tags.delall("APIC")
            audio.tags.add(APIC(encoding=3, mime=mime_type, type=3, desc="Cover", data=data))
        else:
            # Ogg/Opus (METADATA_BLOCK_PICTURE) and ASF covers aren't supported
            logger.debug("Artwork embedding not supported for %s", file_path.suffix)
            return False

        audio.save()
        return True

    async def _download_artwork(self, url: str) -> bytes | None:
        """Download artwork over HTTP; None on any network error."""
        try:
            if self._http_client is None:
                self._http_client = httpx.AsyncClient(timeout=30.0, follow_redirects=True)
            response = await self._http_client.get(url)
            response.raise_for_status()
            return response.content
        except httpx.HTTPError as e:
            logger.warning("Failed to download artwork from %s: %s", url, e)
            return None

    def _detect_image_mime(self, data: bytes) -> str:
        if data[:8] == b"\x89PNG\r\n\x1a\n":
            return "image/png"
        return "image/jpeg"

    async def close(self) -> None:
        """Close the HTTP client (call on shutdown)."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
