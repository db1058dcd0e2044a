"""Tag migration - moves database ids from legacy tag keys to the canonical key."""

import logging
from pathlib import Path

from muzik.application.services.metadata_tagger import MetadataTaggerService
from muzik.domain.exceptions import LibraryIOError, TagCodecError
from muzik.domain.ports import IAudioFileLister
from muzik.infrastructure.observability.logging import correlation_scope

logger = logging.getLogger(__name__)


class TagMigrationService:
    """Rewrites "ID" tags as "DBID" (or whatever the configured keys are).

    Hey future me - older builds wrote the database id under "ID" from one save path and "DBID"
    from another. Reading accepts both; this service makes the files consistent so the legacy
    keys can eventually be dropped from settings. Files that already have a canonical id are
    left untouched (even if a legacy key disagrees - the canonical one wins on read anyway).
    """

    def __init__(self, tagger: MetadataTaggerService, lister: IAudioFileLister) -> None:
        self.tagger = tagger
        self.lister = lister

    async def migrate_legacy_id_tags(self, directory: Path, max_depth: int = 1) -> list[Path]:
        """Rewrite legacy-only id tags under the canonical key. Returns rewritten files."""
        canonical = self.tagger.tagging.id_tag_key
        rewritten: list[Path] = []

        with correlation_scope():
            try:
                files = self.lister.list_audio_files(directory, max_depth=max_depth)
            except LibraryIOError:
                logger.error("Cannot list %s for tag migration", directory)
                raise

            for path in files:
                try:
                    keys = await self.tagger.read_identifier_keys(path)
                except TagCodecError as e:
                    logger.warning("Skipping %s: %s", path, e.reason)
                    continue

                if keys.get(canonical):
                    continue
                legacy_value = next(
                    (value for key, value in keys.items() if key != canonical and value),
                    None,
                )
                if legacy_value is None:
                    continue
                try:
                    song_id = int(legacy_value.strip())
                except ValueError:
                    logger.warning("Skipping %s: legacy id %r is not a number", path, legacy_value)
                    continue

                result = await self.tagger.write_identifier(path, song_id)
                if result.success:
                    rewritten.append(path)
                    logger.info("Migrated id tag of %s to %s=%s", path.name, canonical, song_id)
                else:
                    logger.warning("Could not migrate %s: %s", path, result.error)

            logger.info("Migrated %d file(s) in %s", len(rewritten), directory)
        return rewritten
