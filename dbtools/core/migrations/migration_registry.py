"""
Migration Registry

Discovers migrations from the migrations directory. Each immediate
subdirectory is one migration; its name is the version ("Initial" or a
dotted version such as "1.0.1") and its *.sql files run in filename order.
"""
import logging
from pathlib import Path
from typing import List, Optional, Union

from dbtools.core.migrations.migration_models import (
    BASELINE_VERSION,
    Migration,
    truncate_description,
)

logger = logging.getLogger("dbtools.migrations.registry")

DESCRIPTION_FILES = ("README.md", "description.txt")


def _sort_key(migration: Migration):
    # baseline first, then by parsed version; folder name breaks ties so the
    # result never depends on directory enumeration order
    return (0 if migration.is_baseline else 1, migration.parsed_version, migration.version)


class MigrationRegistry:
    """
    Discovers migration folders. Nothing is cached: every call re-reads
    the filesystem so edits to the directory are picked up immediately.
    """

    def __init__(self, migrations_dir: Union[str, Path]):
        """
        Args:
            migrations_dir: Root directory holding one folder per migration.
        """
        self.migrations_dir = Path(migrations_dir)

    def discover_migrations(self) -> List[Migration]:
        """
        Discover all migrations under the migrations directory.

        Returns:
            Migrations sorted baseline first, then ascending by version.
            Folders without .sql files are skipped.
        """
        if not self.migrations_dir.is_dir():
            logger.warning(f"Migrations directory not found: {self.migrations_dir}")
            return []

        migrations: List[Migration] = []
        for directory in self.migrations_dir.iterdir():
            if not directory.is_dir():
                continue

            # str comparison is ordinal (code point), never locale aware
            sql_files = sorted(
                (p for p in directory.iterdir() if p.is_file() and p.suffix == ".sql"),
                key=lambda p: p.name,
            )
            if not sql_files:
                logger.debug(f"Skipping {directory.name}: no .sql files")
                continue

            migrations.append(Migration(
                version=directory.name,
                source_directory=directory,
                script_files=tuple(sql_files),
                description=self._read_description(directory),
            ))

        migrations.sort(key=_sort_key)
        logger.debug(f"Discovered {len(migrations)} migrations from {self.migrations_dir}")
        return migrations

    def get_migration(self, version: str) -> Optional[Migration]:
        for migration in self.discover_migrations():
            if migration.version == version:
                return migration
        return None

    def get_baseline(self) -> Optional[Migration]:
        return self.get_migration(BASELINE_VERSION)

    def get_latest_versioned(self) -> Optional[Migration]:
        """
        Highest versioned (non-baseline) migration, or None if there are none.
        """
        versioned = [m for m in self.discover_migrations() if not m.is_baseline]
        if not versioned:
            return None
        return max(versioned, key=lambda m: m.parsed_version)

    @staticmethod
    def _read_description(directory: Path) -> Optional[str]:
        for name in DESCRIPTION_FILES:
            path = directory / name
            if path.is_file():
                return truncate_description(path.read_text(encoding="utf-8-sig"))
        return None
