"""Application lifecycle: the composition root that wires everything together."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.engine import make_url

from muzik.application.services import (
    FileDiscoveryService,
    LibraryReconciler,
    MetadataTaggerService,
    SongEditorService,
    TagMigrationService,
)
from muzik.config import Settings, get_settings
from muzik.domain.exceptions import ConfigurationError
from muzik.infrastructure.observability.logging import configure_logging
from muzik.infrastructure.persistence import Database, MetadataStore

logger = logging.getLogger(__name__)


def _sqlite_db_path(url: str) -> Path | None:
    parsed = make_url(url)
    if not parsed.drivername.startswith("sqlite"):
        return None
    if not parsed.database or parsed.database == ":memory:":
        return None
    return Path(parsed.database)


def _validate_sqlite_path(settings: Settings) -> None:
    """Validate SQLite database path accessibility before engine creation.

    Ensures the parent directory exists and is writable (SQLite also needs to create
    its journal next to the database file). The database file itself is left to
    SQLite to create on first connection.
    """
    db_path = _sqlite_db_path(settings.database.url)
    if db_path is None:
        return

    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create database directory '{db_path.parent}': {exc}. "
            "Set MUZIK_LIBRARY__MUSIC_DIR or MUZIK_DATABASE__URL to a writable location."
        ) from exc

    test_file = db_path.parent / f".{db_path.stem}_write_test"
    try:
        test_file.write_bytes(b"test")
        test_file.unlink()
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to write files in database directory '{db_path.parent}': {exc}. "
            "SQLite requires write permissions to create database and journal files."
        ) from exc
    logger.debug("Verified database directory is writable: %s", db_path.parent)


# Hey future me, Library is the bag of wired services a front-end (CLI, TUI, GUI) gets. Every
# service receives exactly the dependencies it needs - no shared handle passed down through
# widgets. Close it (or use open_library) so the engine and HTTP client are released.
@dataclass
class Library:
    """Wired application services for one music directory."""

    settings: Settings
    database: Database
    store: MetadataStore
    tagger: MetadataTaggerService
    lister: FileDiscoveryService
    reconciler: LibraryReconciler
    editor: SongEditorService
    migration: TagMigrationService

    @property
    def music_dir(self) -> Path:
        return self.settings.library.music_dir

    async def close(self) -> None:
        await self.tagger.close()
        await self.database.close()
        logger.debug("Library closed")


async def create_library(settings: Settings | None = None) -> Library:
    """Build the service graph; creates missing tables when configured to."""
    settings = settings or get_settings()

    _validate_sqlite_path(settings)
    database = Database(settings)
    if settings.database.auto_create_tables:
        await database.create_tables()
    logger.info("Database initialized: %s", settings.database.url)

    store = MetadataStore(database)
    tagger = MetadataTaggerService(settings.tagging)
    lister = FileDiscoveryService()
    music_dir = settings.library.music_dir

    return Library(
        settings=settings,
        database=database,
        store=store,
        tagger=tagger,
        lister=lister,
        reconciler=LibraryReconciler(store, tagger, lister, music_dir=music_dir),
        editor=SongEditorService(
            store,
            tagger,
            composer=settings.naming.composer(),
            embed_artwork=settings.tagging.embed_artwork,
        ),
        migration=TagMigrationService(tagger, lister),
    )


# Listen future me, this is the entry point front-ends use:
#     async with open_library() as library:
#         songs = await library.reconciler.reconcile()
# Logging is configured first so database setup errors are already formatted nicely.
@asynccontextmanager
async def open_library(
    settings: Settings | None = None, configure_logs: bool = True
) -> AsyncGenerator[Library, None]:
    """Configure logging, open the library and close it on exit."""
    settings = settings or get_settings()
    if configure_logs:
        configure_logging(
            log_level=settings.log_level,
            json_format=settings.observability.log_json_format,
            app_name=settings.app_name,
        )
    logger.info("Opening music library: %s", settings.library.music_dir)

    library = await create_library(settings)
    try:
        yield library
    finally:
        await library.close()
