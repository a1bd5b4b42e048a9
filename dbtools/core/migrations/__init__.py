"""
Migration catalog: models and folder discovery.
"""

from dbtools.core.migrations.migration_models import (
    BASELINE_VERSION,
    DbError,
    DbResult,
    ErrorKind,
    ExecutedVersion,
    Migration,
    MigrationResult,
    MigrationStatusEntry,
    parse_version,
)
from dbtools.core.migrations.migration_registry import MigrationRegistry

__all__ = [
    "BASELINE_VERSION",
    "DbError",
    "DbResult",
    "ErrorKind",
    "ExecutedVersion",
    "Migration",
    "MigrationRegistry",
    "MigrationResult",
    "MigrationStatusEntry",
    "parse_version",
]
