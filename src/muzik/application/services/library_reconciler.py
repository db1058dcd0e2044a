# Hey future me - this service merges the two halves of the collection into ONE list!
# On-disk files know their tags (and their database id, embedded as a custom tag), the database
# knows songs whose files may be gone. The reconciler:
# 1. lists audio files one level deep (collections are flat)
# 2. decodes each file's tags into a transient Song
# 3. asks the store whether that Song matches the row its embedded id points at
# 4. fetches every stored song NOT matched in step 3 as a database-only record
# Result: on-disk songs in scan order, followed by database-only songs. Read-only - the store is
# never mutated here.
"""Library reconciler: unified view of on-disk files and stored songs."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from muzik.domain.entities import Pending, Song
from muzik.domain.exceptions import ConfigurationError, TagCodecError
from muzik.domain.ports import IAudioFileLister, IMetadataStore, ITagCodec
from muzik.infrastructure.observability.logging import correlation_scope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedFile:
    """A file left out of a reconciliation pass, with the reason."""

    path: Path
    reason: str


@dataclass
class ReconciliationResult:
    """Outcome of one reconciliation pass."""

    songs: list[Song] = field(default_factory=list)
    skipped: list[SkippedFile] = field(default_factory=list)
    matched_ids: set[int] = field(default_factory=set)

    @property
    def on_disk(self) -> list[Song]:
        return [song for song in self.songs if song.path is not None]

    @property
    def database_only(self) -> list[Song]:
        return [song for song in self.songs if song.path is None]


class LibraryReconciler:
    """Produces one de-duplicated list of songs with provenance.

    Dependencies are injected: the store (narrow IMetadataStore port), the tag codec and the
    file lister. Nothing here touches a session or mutagen directly.
    """

    def __init__(
        self,
        store: IMetadataStore,
        codec: ITagCodec,
        lister: IAudioFileLister,
        music_dir: Path | None = None,
    ) -> None:
        self.store = store
        self.codec = codec
        self.lister = lister
        self.music_dir = music_dir

    async def reconcile(self, directory: Path | None = None) -> list[Song]:
        """Unified song list: on-disk songs first (scan order), then database-only songs."""
        result = await self.reconcile_with_report(directory)
        return result.songs

    async def reconcile_with_report(
        self, directory: Path | None = None
    ) -> ReconciliationResult:
        """Same as reconcile(), plus skipped files and the matched ids."""
        directory = directory or self.music_dir
        if directory is None:
            raise ConfigurationError("No directory given and no music directory configured")

        with correlation_scope():
            logger.info("Reconciling %s", directory)
            result = ReconciliationResult()

            on_disk: list[Song] = []
            for path in self.lister.list_audio_files(directory, max_depth=1):
                song = await self._scan_file(path, directory, result)
                if song is not None:
                    on_disk.append(song)

            # Hey future me - fetch_excluding_ids with an EMPTY set returns every stored song,
            # which is exactly right for a fresh directory.
            database_only = await self.store.fetch_excluding_ids(
                result.matched_ids, directory
            )
            for song in database_only:
                song.path = None
                song.in_database = True

            result.songs = on_disk + database_only
            logger.info(
                "Reconciled %d song(s): %d on disk (%d matched), %d database-only, %d skipped",
                len(result.songs),
                len(on_disk),
                len(result.matched_ids),
                len(database_only),
                len(result.skipped),
            )
            return result

    # Yo, per-file isolation! A file mutagen can't decode is logged + reported in `skipped` and
    # the pass continues. One corrupt download must never hide the whole collection.
    async def _scan_file(
        self, path: Path, directory: Path, result: ReconciliationResult
    ) -> Song | None:
        try:
            song = await self.codec.read_tags(path)
        except TagCodecError as e:
            logger.warning("Skipping %s: %s", path, e.reason)
            result.skipped.append(SkippedFile(path=path, reason=e.reason))
            return None

        song.music_dir = directory
        song.path = path
        embedded_id = song.id
        song.in_database = await self.store.is_song_in_database(song)

        if song.in_database and embedded_id is not None:
            result.matched_ids.add(embedded_id)
            song.stored_path = song.database_path
        elif embedded_id is not None:
            # Stale or foreign id tag: the file is treated as a new song
            logger.info(
                "Embedded id %s of %s does not match the stored row", embedded_id, path.name
            )
            song.identity = Pending()
        return song
