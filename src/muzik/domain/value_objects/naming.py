"""Filename composition for songs in the collection.

Hey future me - this turns an ordered list of typed components into the on-disk
name of a song! The same list is used before a download (no database id yet)
and after the first save (id known), so composition MUST be deterministic.

The key concepts:
1. COMPONENTS: Title, Artist, Album, DatabaseId, SourceId resolve to the song's
   textual values; Custom inserts a literal (usually a separator like "-")
2. ENCLOSE: each value component may be wrapped in {}, [] or ()
3. VARIANTS: pre-download drops DatabaseId, template appends "%(ext)s"
4. SANITIZATION: illegal character replacement, applied only to on-disk names

Usage:
    from muzik.domain.value_objects.naming import FileNameComponent, Enclose, compose

    components = [
        FileNameComponent.title(),
        FileNameComponent.custom("-"),
        FileNameComponent.artist(),
        FileNameComponent.database_id(Enclose.BRACKET),
    ]
    compose(components, song, "opus")  # "Crossing Field - LiSA [1].opus"
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from muzik.domain.entities import UNKNOWN, Song

# Placeholder the external downloader substitutes with the real extension
PLACEHOLDER_EXTENSION = "%(ext)s"


class Enclose(str, Enum):
    """Bracket style wrapped around a component value."""

    CURLY_BRACKET = "curly_bracket"
    """{value}"""

    BRACKET = "bracket"
    """[value]"""

    PARENTHESIS = "parenthesis"
    """(value)"""

    NONE = "none"
    """value"""

    def wrap(self, text: str) -> str:
        if self is Enclose.CURLY_BRACKET:
            return f"{{{text}}}"
        if self is Enclose.BRACKET:
            return f"[{text}]"
        if self is Enclose.PARENTHESIS:
            return f"({text})"
        return text


class ComponentKind(str, Enum):
    """Which song value a component renders."""

    TITLE = "title"
    ARTIST = "artist"
    ALBUM = "album"
    DATABASE_ID = "database_id"
    SOURCE_ID = "source_id"
    CUSTOM = "custom"


class ColonReplacement(str, Enum):
    """Options for replacing colons in filenames (illegal on Windows).

    Hey future me - colons are common in song titles ("Re: Stacks") but can't
    live in a Windows filename, so they get their own setting.
    """

    DELETE = ""
    """Remove colons entirely: "Re: Stacks" → "Re Stacks" """

    DASH = "-"
    """Replace with dash: "Re: Stacks" → "Re- Stacks" """

    SPACE_DASH = " -"
    """Replace with space-dash (default): "Re: Stacks" → "Re - Stacks" """


@dataclass(frozen=True)
class FileNameComponent:
    """One entry of the filename format.

    text is only meaningful for CUSTOM components; enclose is ignored for them
    (the literal is inserted verbatim).
    """

    kind: ComponentKind
    enclose: Enclose = Enclose.NONE
    text: str = ""

    @classmethod
    def title(cls, enclose: Enclose = Enclose.NONE) -> "FileNameComponent":
        return cls(ComponentKind.TITLE, enclose)

    @classmethod
    def artist(cls, enclose: Enclose = Enclose.NONE) -> "FileNameComponent":
        return cls(ComponentKind.ARTIST, enclose)

    @classmethod
    def album(cls, enclose: Enclose = Enclose.NONE) -> "FileNameComponent":
        return cls(ComponentKind.ALBUM, enclose)

    @classmethod
    def database_id(cls, enclose: Enclose = Enclose.NONE) -> "FileNameComponent":
        return cls(ComponentKind.DATABASE_ID, enclose)

    @classmethod
    def source_id(cls, enclose: Enclose = Enclose.NONE) -> "FileNameComponent":
        return cls(ComponentKind.SOURCE_ID, enclose)

    @classmethod
    def custom(cls, text: str) -> "FileNameComponent":
        return cls(ComponentKind.CUSTOM, Enclose.NONE, text)

    def render(self, song: Song) -> str:
        """Render this component for one song."""
        if self.kind is ComponentKind.CUSTOM:
            return self.text
        if self.kind is ComponentKind.TITLE:
            value = song.title_string
        elif self.kind is ComponentKind.ARTIST:
            value = song.artists_string
        elif self.kind is ComponentKind.ALBUM:
            value = song.albums_string
        elif self.kind is ComponentKind.DATABASE_ID:
            value = song.id_string
        else:
            value = song.source_id_string
        return self.enclose.wrap(value)


DEFAULT_COMPONENTS: tuple[FileNameComponent, ...] = (
    FileNameComponent.title(),
    FileNameComponent.custom("-"),
    FileNameComponent.artist(),
    FileNameComponent.database_id(Enclose.BRACKET),
)


def _with_extension(stem: str, extension: str | None) -> str:
    stem = stem.strip()
    if extension is None:
        return stem
    # Accept both "opus" and ".opus"
    return f"{stem}.{extension.lstrip('.')}".strip()


def compose(
    components: Sequence[FileNameComponent],
    song: Song,
    extension: str | None = None,
) -> str:
    """Compose the name of a song from an ordered list of components.

    Each component is rendered and followed by a single space, the whole string
    is trimmed, and the extension (if any) is appended after a literal dot.

    Args:
        components: Ordered filename format.
        song: Song providing the values.
        extension: Optional extension without (or with) the leading dot.

    Returns:
        The composed name, e.g. "Crossing Field - LiSA [1].opus".
    """
    stem = "".join(f"{component.render(song)} " for component in components)
    return _with_extension(stem, extension)


def compose_predownload(
    components: Sequence[FileNameComponent],
    song: Song,
    extension: str | None = None,
) -> str:
    """Compose a name before the song has a database id.

    Same as compose() with every DATABASE_ID component dropped; the other
    components keep their order.
    """
    kept = [c for c in components if c.kind is not ComponentKind.DATABASE_ID]
    return compose(kept, song, extension)


def compose_template(components: Sequence[FileNameComponent], song: Song) -> str:
    """Compose a name ending in the downloader's extension placeholder."""
    return compose(components, song, PLACEHOLDER_EXTENSION)


ILLEGAL_CHARS_PATTERN = re.compile(r'[<>"/\\|?*\x00-\x1f]')


def sanitize_filename(
    filename: str, colon_replacement: ColonReplacement = ColonReplacement.SPACE_DASH
) -> str:
    """Remove or replace characters that are illegal in filenames.

    Hey future me - Windows is the most restrictive, so we sanitize for that.
    A name that ends up empty becomes "Unknown" so a file never loses its stem.
    """
    result = filename.replace(":", colon_replacement.value)
    result = ILLEGAL_CHARS_PATTERN.sub("", result)
    # Trim whitespace and dots from ends (Windows requirement)
    result = result.strip(" .")
    return result or UNKNOWN


class FilenameComposer:
    """Composer bound to a configured component list.

    This is what the editor uses for on-disk names: the stem is sanitized
    (when enabled) before the extension is attached, so "%(ext)s" and real
    extensions are never touched.
    """

    def __init__(
        self,
        components: Sequence[FileNameComponent] = DEFAULT_COMPONENTS,
        replace_illegal_characters: bool = True,
        colon_replacement: ColonReplacement = ColonReplacement.SPACE_DASH,
    ) -> None:
        self.components = tuple(components)
        self.replace_illegal_characters = replace_illegal_characters
        self.colon_replacement = colon_replacement

    def _finish(self, stem: str, extension: str | None) -> str:
        if self.replace_illegal_characters:
            stem = sanitize_filename(stem, self.colon_replacement)
        return _with_extension(stem, extension)

    def filename(self, song: Song, extension: str | None = None) -> str:
        """Final on-disk name (song must be persisted for a meaningful id)."""
        return self._finish(compose(self.components, song), extension)

    def predownload_filename(self, song: Song, extension: str | None = None) -> str:
        return self._finish(compose_predownload(self.components, song), extension)

    def download_template(self, song: Song) -> str:
        """Name with the placeholder extension, handed to the downloader."""
        return self._finish(compose(self.components, song), PLACEHOLDER_EXTENSION)
