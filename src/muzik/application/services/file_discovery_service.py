"""File discovery - lists the audio files of the collection."""

import logging
import os
from pathlib import Path

from muzik.domain.exceptions import LibraryIOError
from muzik.domain.ports import IAudioFileLister

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = frozenset(
    {".mp3", ".flac", ".ogg", ".oga", ".opus", ".m4a", ".mp4", ".aac", ".wav", ".wma"}
)


class FileDiscoveryService(IAudioFileLister):
    """Lists audio files by extension.

    Hey future me - collections are FLAT by convention (every song sits directly in music_dir),
    so the default depth is 1. Results are sorted by file name, which gives the reconciler a
    stable scan order on every platform (os.scandir order is filesystem dependent).
    """

    def __init__(self, extensions: frozenset[str] = AUDIO_EXTENSIONS) -> None:
        self.extensions = frozenset(ext.lower() for ext in extensions)

    def is_audio_file(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def list_audio_files(self, directory: Path, max_depth: int = 1) -> list[Path]:
        """Audio files up to max_depth levels below directory (1 = the directory itself).

        Raises:
            LibraryIOError: directory is missing or unreadable
        """
        if not directory.is_dir():
            raise LibraryIOError(directory, "not a directory")

        audio_files: list[Path] = []
        self._walk(directory, 1, max_depth, audio_files)
        audio_files.sort(key=lambda p: (p.name, str(p)))
        logger.debug("Found %d audio file(s) in %s", len(audio_files), directory)
        return audio_files

    def _walk(self, directory: Path, depth: int, max_depth: int, found: list[Path]) -> None:
        try:
            entries = list(os.scandir(directory))
        except OSError as e:
            if depth == 1:
                raise LibraryIOError(directory, str(e)) from e
            # Unreadable subdirectory: skip it, keep the rest of the scan
            logger.warning("Skipping unreadable directory %s: %s", directory, e)
            return

        for entry in entries:
            path = Path(entry.path)
            if entry.is_file() and self.is_audio_file(path):
                found.append(path)
            elif entry.is_dir() and depth < max_depth:
                self._walk(path, depth + 1, max_depth, found)
