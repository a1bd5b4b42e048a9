"""
Migration Models

Data models for migration metadata, executed version records and the
result types passed between the gateway, the runner and its callers.
"""
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Tuple

# Folder name of the bootstrap migration. It never parses as a dotted version.
BASELINE_VERSION = "Initial"

DESCRIPTION_MAX_LENGTH = 500

VERSION_PATTERN = re.compile(r"^\d+(\.\d+){1,3}$")

ZERO_VERSION: Tuple[int, ...] = (0, 0, 0, 0)


def parse_version(version: Optional[str]) -> Tuple[int, ...]:
    """
    Parse a dotted numeric version ("1.0.1") into a comparable tuple.

    Two to four components are accepted and padded with zeros, so "1.0"
    and "1.0.0" compare equal. The baseline sentinel and anything that does
    not parse fall back to 0.0.0.
    """
    if not version or version == BASELINE_VERSION:
        return ZERO_VERSION

    candidate = version.strip()
    if not VERSION_PATTERN.match(candidate):
        return ZERO_VERSION

    parts = tuple(int(p) for p in candidate.split("."))
    return parts + (0,) * (4 - len(parts))


def is_valid_version(version: Optional[str]) -> bool:
    """True for the baseline sentinel or a well formed dotted version."""
    if version == BASELINE_VERSION:
        return True
    return bool(version) and bool(VERSION_PATTERN.match(version.strip()))


def truncate_description(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    if len(text) > DESCRIPTION_MAX_LENGTH:
        return text[:DESCRIPTION_MAX_LENGTH] + "..."
    return text


class ErrorKind(Enum):
    """Category of a gateway or runner failure."""
    CONNECTION = "connection"
    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    SQL = "sql"
    RECORDING = "recording"
    CATALOG = "catalog"
    UNKNOWN = "unknown"


@dataclass
class DbError:
    kind: ErrorKind
    message: str
    exception: Optional[BaseException] = None

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


@dataclass
class DbResult:
    """
    Outcome of one gateway call.

    Truthiness follows ``ok`` so callers can keep writing
    ``if not await gateway.test_connection()``; ``error.kind`` tells
    "not found" apart from "connection refused" when they need to.
    """
    ok: bool
    value: Any = None
    error: Optional[DbError] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, value: Any = None) -> "DbResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        exception: Optional[BaseException] = None,
        value: Any = None,
    ) -> "DbResult":
        return cls(ok=False, value=value, error=DbError(kind, message, exception))


@dataclass(frozen=True)
class Migration:
    """
    A migration folder discovered on disk.
    """
    version: str
    source_directory: Path
    script_files: Tuple[Path, ...] = ()
    description: Optional[str] = None

    @property
    def is_baseline(self) -> bool:
        return self.version == BASELINE_VERSION

    @property
    def parsed_version(self) -> Tuple[int, ...]:
        return parse_version(self.version)

    @property
    def script_names(self) -> List[str]:
        return [p.name for p in self.script_files]

    def __str__(self) -> str:
        return f"Migration({self.version}, {len(self.script_files)} scripts)"


@dataclass
class ExecutedVersion:
    """
    A row of the db_versions table.
    """
    id: int
    version: str
    executed_at: datetime
    description: Optional[str] = None


@dataclass
class MigrationResult:
    """
    Result of one runner operation. Never persisted.
    """
    success: bool = False
    message: str = ""
    executed_scripts: List[str] = field(default_factory=list)
    error: Optional[DbError] = None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @property
    def error_detail(self) -> Optional[str]:
        if self.error is None:
            return None
        if self.error.exception is not None:
            return str(self.error.exception)
        return self.error.message


@dataclass
class MigrationStatusEntry:
    """
    One line of ``list-migrations``: a catalog entry joined with its
    executed record, if any.
    """
    migration: Migration
    executed: Optional[ExecutedVersion] = None

    @property
    def is_executed(self) -> bool:
        return self.executed is not None

    def to_dict(self) -> dict:
        return {
            "version": self.migration.version,
            "description": self.migration.description,
            "scripts": self.migration.script_names,
            "executed": self.is_executed,
            "executed_at": self.executed.executed_at.isoformat() if self.executed else None,
        }
