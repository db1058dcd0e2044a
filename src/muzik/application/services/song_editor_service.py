"""Song editor service - save, delete and naming flows for one song."""

import asyncio
import logging
from pathlib import Path

from muzik.domain.entities import RelationKind, Song
from muzik.domain.exceptions import LibraryIOError, NoSongIdError, TagCodecError
from muzik.domain.ports import IMetadataStore, ITagCodec
from muzik.domain.value_objects.naming import FilenameComposer
from muzik.infrastructure.observability.logging import correlation_scope

logger = logging.getLogger(__name__)


class SongEditorService:
    """Edit flows behind the song editor.

    Hey future me - save() is THE write path for user edits. Everything for one song happens in
    ONE store transaction:
    1. insert (Pending) or update (Persisted) the row plus all four relation sets
    2. compose the on-disk name now that the id is known, rename the file if it changed
    3. store the new relative path
    4. write the tags (canonical id key + source id) into the file
    If any step fails the transaction rolls back AND the rename is undone. When the failure comes
    after the tag write (the commit itself), a new song's tags are rewritten without the id, since
    that id was never committed and SQLite may hand it to the next insert.
    A song whose file is gone is only stored; there is nothing to rename or tag.
    """

    def __init__(
        self,
        store: IMetadataStore,
        codec: ITagCodec,
        composer: FilenameComposer | None = None,
        embed_artwork: bool = False,
    ) -> None:
        self.store = store
        self.codec = codec
        self.composer = composer or FilenameComposer()
        self.embed_artwork = embed_artwork

    async def save(self, song: Song) -> Song:
        """Persist a song and bring its file in line. Returns the persisted song."""
        with correlation_scope():
            renamed: tuple[Path, Path] | None = None
            tags_written = False
            try:
                async with self.store.transaction() as repo:
                    if song.is_persisted:
                        saved = await repo.update_with_relations(song)
                    else:
                        saved = await repo.insert_with_relations(song)

                    if saved.path is not None and not saved.path.exists():
                        logger.warning(
                            "File %s of song %s is missing, storing metadata only",
                            saved.path,
                            saved.id,
                        )
                    elif saved.path is not None:
                        renamed = await self._rename_to_composed(saved)
                        assert saved.id is not None
                        saved.stored_path = saved.database_path
                        await repo.set_path(saved.id, saved.stored_path)
                        await self._write_tags(saved)
                        tags_written = True
            except Exception:
                if renamed is not None:
                    await self._undo_rename(*renamed)
                if tags_written:
                    await self._restore_tags(song)
                raise

            logger.info("Saved song %s (%s)", saved.id, saved.file_name or "no file")

        if self.embed_artwork and saved.path is not None and saved.thumbnail_url:
            await self.codec.embed_artwork(saved.path, saved.thumbnail_url)
        return saved

    async def delete(self, song: Song, remove_file: bool = False) -> None:
        """Cascade-delete the song; optionally remove its audio file afterwards."""
        if song.id is None:
            raise NoSongIdError()
        with correlation_scope():
            await self.store.delete_song(song.id)
            if remove_file and song.path is not None:
                try:
                    await asyncio.to_thread(song.path.unlink, True)
                except OSError as e:
                    raise LibraryIOError(song.path, str(e)) from e
                logger.info("Removed file %s", song.path)

    def planned_filename(self, song: Song, extension: str | None = None) -> str:
        """Name a song will get before its first save (no database id yet)."""
        return self.composer.predownload_filename(song, extension)

    def download_template(self, song: Song) -> str:
        """Output template handed to the external downloader ("... .%(ext)s")."""
        return self.composer.download_template(song)

    async def suggestions(self, kind: RelationKind) -> list[str]:
        """Known names for one relation (artist/album/genre autocomplete)."""
        return await self.store.list_names(kind)

    # =========================================================================
    # FILE STEPS
    # =========================================================================

    async def _rename_to_composed(self, song: Song) -> tuple[Path, Path] | None:
        """Rename song.path to the composed name; returns (old, new) or None if unchanged."""
        assert song.path is not None
        old_path = song.path
        new_name = self.composer.filename(song, old_path.suffix or None)
        new_path = old_path.with_name(new_name)
        if new_path == old_path:
            return None
        if new_path.exists():
            raise LibraryIOError(new_path, "a file with the composed name already exists")
        try:
            await asyncio.to_thread(old_path.rename, new_path)
        except OSError as e:
            raise LibraryIOError(old_path, f"rename failed: {e}") from e
        logger.info("Renamed %s -> %s", old_path.name, new_path.name)
        song.path = new_path
        return old_path, new_path

    async def _undo_rename(self, old_path: Path, new_path: Path) -> None:
        try:
            await asyncio.to_thread(new_path.rename, old_path)
            logger.info("Reverted rename %s -> %s", new_path.name, old_path.name)
        except OSError as e:
            logger.error("Could not revert rename %s -> %s: %s", new_path, old_path, e)

    # Hey future me - only reached when the commit failed AFTER the file was tagged. song is the
    # caller's input, so its path is the pre-rename one the file was just moved back to.
    async def _restore_tags(self, song: Song) -> None:
        if song.path is None:
            return
        if song.is_persisted:
            logger.warning(
                "Save of song %s failed after tagging; %s carries the unsaved edit",
                song.id,
                song.path.name,
            )
            return
        result = await self.codec.write_tags(song.path, song)
        if result.success:
            logger.warning("Save failed after tagging; removed uncommitted id from %s", song.path)
        else:
            logger.error(
                "Save failed after tagging and %s still carries an uncommitted id: %s",
                song.path,
                result.error,
            )

    async def _write_tags(self, song: Song) -> None:
        assert song.path is not None
        result = await self.codec.write_tags(song.path, song)
        if not result.success:
            raise TagCodecError(song.path, result.error or "tagging failed")
