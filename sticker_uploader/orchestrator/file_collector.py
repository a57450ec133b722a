"""File collection utilities for sticker uploads."""
from pathlib import Path
from typing import List

from ..models import Item

DEFAULT_PATTERN = "*.webm"


class FileCollector:
    """Collects sticker files from a folder."""

    @staticmethod
    def collect_files(folder: Path, pattern: str = DEFAULT_PATTERN) -> List[Path]:
        """
        Collect matching files in ``folder`` (not recursive).

        Args:
            folder: Folder to scan
            pattern: Glob pattern, ``*.webm`` by default

        Returns:
            File paths in lexicographic order
        """
        folder = Path(folder)
        if not folder.is_dir():
            return []
        return sorted(
            (path for path in folder.glob(pattern) if path.is_file()),
            key=lambda path: str(path),
        )

    @classmethod
    def collect_items(cls, folder: Path, pattern: str = DEFAULT_PATTERN) -> List[Item]:
        return [Item.from_path(path) for path in cls.collect_files(folder, pattern)]
