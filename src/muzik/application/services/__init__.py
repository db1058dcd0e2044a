"""Application services."""

from muzik.application.services.file_discovery_service import (
    AUDIO_EXTENSIONS,
    FileDiscoveryService,
)
from muzik.application.services.library_reconciler import (
    LibraryReconciler,
    ReconciliationResult,
    SkippedFile,
)
from muzik.application.services.metadata_tagger import MetadataTaggerService
from muzik.application.services.song_editor_service import SongEditorService
from muzik.application.services.tag_migration_service import TagMigrationService

__all__ = [
    "AUDIO_EXTENSIONS",
    "FileDiscoveryService",
    "LibraryReconciler",
    "ReconciliationResult",
    "SkippedFile",
    "MetadataTaggerService",
    "SongEditorService",
    "TagMigrationService",
]
