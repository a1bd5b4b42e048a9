"""
Migration Runner

Drives setup and version updates: discovers migrations through the
registry, compares them with the executed versions held by the gateway and
executes the pending ones in order, stopping at the first failure.
Nothing is rolled back when a migration fails; earlier migrations of the
same run stay applied.
"""
import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Union

from dbtools.core.migrations.migration_models import (
    BASELINE_VERSION,
    DbError,
    ErrorKind,
    ExecutedVersion,
    Migration,
    MigrationResult,
    MigrationStatusEntry,
    is_valid_version,
    parse_version,
)
from dbtools.core.migrations.migration_registry import MigrationRegistry
from dbtools.services.database.gateway import VERSION_TABLE, DatabaseGateway

logger = logging.getLogger("dbtools.migrations")


class MigrationError(Exception):
    """
    Raised by query helpers when the executed versions cannot be read.
    The runner's entry points turn it into a failed MigrationResult.
    """

    def __init__(self, error: DbError):
        super().__init__(error.message)
        self.error = error


def _failed(message: str, error: Optional[DbError] = None) -> MigrationResult:
    logger.error(f"❌ {message}")
    return MigrationResult(success=False, message=message, error=error)


def _unexpected(prefix: str, exc: Exception) -> MigrationResult:
    return _failed(f"{prefix}: {exc}", DbError(ErrorKind.UNKNOWN, str(exc), exc))


class MigrationRunner:
    """
    Discovers and executes pending database migrations.
    """

    def __init__(self, gateway: DatabaseGateway, migrations_dir: Union[str, Path]):
        """
        Args:
            gateway: Engine specific database gateway
            migrations_dir: Root directory with one folder per migration
        """
        self.gateway = gateway
        self.registry = MigrationRegistry(migrations_dir)

    def get_available_migrations(self) -> List[Migration]:
        """
        All migrations on disk: baseline first, then ascending by version.
        """
        return self.registry.discover_migrations()

    async def _executed_versions(self) -> List[ExecutedVersion]:
        result = await self.gateway.get_executed_versions()
        if not result:
            raise MigrationError(result.error)
        return result.value or []

    async def get_pending_migrations(self, target_version: Optional[str] = None) -> List[Migration]:
        """
        Migrations not yet recorded as executed, in catalog order, limited
        to versions <= target_version when one is given.

        The baseline parses as 0.0.0, so it is pending for any target until
        it has run. So is any folder whose name is not a valid version.

        Raises:
            ValueError: If target_version is not a valid version.
            MigrationError: If the executed versions cannot be read.
        """
        if target_version and not is_valid_version(target_version):
            raise ValueError(f"Invalid target version: {target_version}")

        all_migrations = self.get_available_migrations()
        executed = {v.version for v in await self._executed_versions()}

        pending = [m for m in all_migrations if m.version not in executed]

        if target_version:
            target = parse_version(target_version)
            pending = [m for m in pending if m.parsed_version <= target]

        return pending

    async def setup_database(self) -> MigrationResult:
        """
        Create the database and the version table, then run the baseline
        migration. Once any version is recorded this is a no-op.
        """
        try:
            logger.info("Setting up database...")

            created = await self.gateway.ensure_database_exists()
            if not created:
                return _failed("Failed to create database", created.error)

            table = await self.gateway.initialize_version_table()
            if not table:
                return _failed("Failed to initialize version table", table.error)

            latest = await self.gateway.get_latest_version()
            if not latest:
                return _failed("Failed to read current database version", latest.error)
            if latest.value is not None:
                logger.info(f"Database already initialized at version {latest.value}")
                return MigrationResult(
                    success=True,
                    message=f"Database already initialized. Current version: {latest.value}",
                )

            baseline = self.registry.get_baseline()
            if baseline is None:
                folder = self.registry.migrations_dir / BASELINE_VERSION
                return _failed(
                    f"Initial migration not found in {folder} folder",
                    DbError(ErrorKind.CATALOG, f"No .sql files found in {folder}"),
                )

            migration_result = await self._execute_migration(baseline)
            if not migration_result.success:
                return _failed(
                    f"Failed to execute initial migration: {migration_result.message}",
                    migration_result.error,
                )

            logger.info("✅ Database setup completed successfully")
            return MigrationResult(
                success=True,
                message="Database setup completed successfully",
                executed_scripts=migration_result.executed_scripts,
            )
        except Exception as e:
            return _unexpected("Setup failed", e)

    async def update_to_version(self, target_version: str) -> MigrationResult:
        """
        Execute every pending migration up to and including target_version.
        """
        result = MigrationResult()
        try:
            logger.info(f"Updating database to version {target_version}...")

            if not is_valid_version(target_version):
                return _failed(
                    f"Invalid target version: {target_version}",
                    DbError(ErrorKind.CATALOG, f"'{target_version}' is not a dotted numeric version"),
                )

            try:
                pending = await self.get_pending_migrations(target_version)
            except MigrationError as e:
                return _failed(f"Failed to read executed versions: {e}", e.error)

            if not pending:
                logger.info("✅ No migrations needed")
                result.success = True
                result.message = f"Database is already at version {target_version} or higher"
                return result

            logger.info(f"Found {len(pending)} migration(s) to execute: "
                        f"{', '.join(m.version for m in pending)}")

            for migration in pending:
                logger.info(f"Executing migration {migration.version}...")
                migration_result = await self._execute_migration(migration)

                if not migration_result.success:
                    failure = _failed(
                        f"Failed at migration {migration.version}: {migration_result.message}",
                        migration_result.error,
                    )
                    # scripts of migrations that completed before the failure stay applied
                    failure.executed_scripts = result.executed_scripts
                    return failure

                result.executed_scripts.extend(migration_result.executed_scripts)
                logger.info(f"✅ Migration {migration.version} completed")

            result.success = True
            result.message = f"Successfully updated to version {target_version}"
            logger.info(f"✅ Database updated to version {target_version}")
            return result
        except Exception as e:
            return _unexpected("Update failed", e)

    async def update_to_latest(self) -> MigrationResult:
        """
        Update to the highest versioned migration on disk.
        """
        try:
            latest = self.registry.get_latest_versioned()
        except Exception as e:
            return _unexpected("Update failed", e)

        if latest is None:
            logger.info("✅ No versioned migrations found")
            return MigrationResult(success=True, message="No versioned migrations found")

        logger.info(f"Latest available version: {latest.version}")
        return await self.update_to_version(latest.version)

    async def list_migrations(self) -> List[MigrationStatusEntry]:
        """
        Every migration on disk with its executed record, if any. If the
        version table cannot be read every migration is reported pending.
        """
        migrations = self.get_available_migrations()
        try:
            executed = await self._executed_versions()
        except MigrationError as e:
            logger.warning(f"Could not read executed versions: {e}")
            executed = []

        by_version = {}
        for record in executed:
            by_version.setdefault(record.version, record)

        return [MigrationStatusEntry(m, by_version.get(m.version)) for m in migrations]

    async def _execute_migration(self, migration: Migration) -> MigrationResult:
        """
        Run every script of one migration in filename order, then record it.
        """
        result = MigrationResult()

        try:
            for script in migration.script_files:
                logger.info(f"  Executing: {script.name}")
                # utf-8-sig drops the byte order mark some editors write
                sql_content = await asyncio.to_thread(script.read_text, encoding="utf-8-sig")

                executed = await self.gateway.execute_sql_script(sql_content)
                if not executed:
                    result.message = f"Failed to execute script: {script.name}"
                    result.error = executed.error
                    return result

                result.executed_scripts.append(script.name)
        except Exception as e:
            result.message = f"Migration execution failed: {e}"
            result.error = DbError(ErrorKind.UNKNOWN, str(e), e)
            return result

        # the SQL has already run; a failed insert leaves the migration
        # unrecorded, so the next run attempts it again
        recorded = await self.gateway.record_migration(migration.version, migration.description)
        if not recorded:
            result.message = f"Failed to record migration in {VERSION_TABLE} table"
            cause = recorded.error
            result.error = DbError(
                ErrorKind.RECORDING,
                cause.message if cause else result.message,
                cause.exception if cause else None,
            )
            return result

        result.success = True
        result.message = f"Migration {migration.version} executed successfully"
        return result
