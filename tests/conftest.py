"""
Shared fixtures: a migrations tree on tmp_path and an in-memory gateway
that implements DatabaseGateway without a database server.
"""
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from dbtools.core.migrations.migration_models import DbResult, ErrorKind, ExecutedVersion
from dbtools.core.sql_splitter import split_sql_statements
from dbtools.services.database.gateway import DatabaseGateway
from dbtools.services.database.migration_runner import MigrationRunner


class InMemoryGateway(DatabaseGateway):
    """
    Records statements instead of running them. Any statement containing
    ``fail_marker`` fails like a syntax error would.
    """

    def __init__(self, fail_marker: str = "INVALID SQL"):
        self.fail_marker = fail_marker
        self.database_exists = False
        self.table_exists = False
        self.reachable = True
        self.fail_recording = False
        self.statements: List[str] = []
        self.rows: List[ExecutedVersion] = []
        self._clock = datetime(2024, 1, 1, 12, 0, 0)

    def _unreachable(self) -> DbResult:
        return DbResult.failure(ErrorKind.CONNECTION, "connection refused")

    async def ensure_database_exists(self) -> DbResult:
        if not self.reachable:
            return self._unreachable()
        created = not self.database_exists
        self.database_exists = True
        return DbResult.success(created)

    async def initialize_version_table(self) -> DbResult:
        if not self.reachable:
            return self._unreachable()
        self.table_exists = True
        return DbResult.success(True)

    async def get_latest_version(self) -> DbResult:
        if not self.reachable:
            return self._unreachable()
        if not self.rows:
            return DbResult.success(None)
        latest = max(self.rows, key=lambda r: (r.executed_at, r.id))
        return DbResult.success(latest.version)

    async def get_executed_versions(self) -> DbResult:
        if not self.reachable:
            return DbResult.failure(ErrorKind.CONNECTION, "connection refused", value=[])
        if not self.table_exists:
            return DbResult.failure(ErrorKind.NOT_FOUND, 'relation "db_versions" does not exist', value=[])
        return DbResult.success(sorted(self.rows, key=lambda r: (r.executed_at, r.id)))

    async def record_migration(self, version: str, description: Optional[str] = None) -> DbResult:
        if self.fail_recording:
            return DbResult.failure(ErrorKind.CONNECTION, "connection lost")
        self._clock += timedelta(seconds=1)
        self.rows.append(ExecutedVersion(
            id=len(self.rows) + 1,
            version=version,
            executed_at=self._clock,
            description=description,
        ))
        return DbResult.success(True)

    async def execute_sql_script(self, sql_content: str) -> DbResult:
        if not self.reachable:
            return self._unreachable()
        for statement in split_sql_statements(sql_content):
            if self.fail_marker in statement:
                return DbResult.failure(ErrorKind.SQL, f'syntax error at or near "{self.fail_marker}"')
            self.statements.append(statement)
        return DbResult.success(True)

    async def test_connection(self) -> DbResult:
        if not self.reachable:
            return self._unreachable()
        return DbResult.success(True)

    @property
    def executed_versions(self) -> List[str]:
        return [r.version for r in sorted(self.rows, key=lambda r: (r.executed_at, r.id))]


def write_migration(root: Path, version: str, files: Dict[str, str], description: Optional[str] = None) -> Path:
    folder = root / version
    folder.mkdir(parents=True, exist_ok=True)
    for name, content in files.items():
        (folder / name).write_text(content, encoding="utf-8")
    if description is not None:
        (folder / "description.txt").write_text(description, encoding="utf-8")
    return folder


@pytest.fixture
def migrations_dir(tmp_path):
    root = tmp_path / "migrations"
    root.mkdir()
    return root


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def runner(gateway, migrations_dir):
    return MigrationRunner(gateway, migrations_dir)
