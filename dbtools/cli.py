#!/usr/bin/env python3
"""
Database tools command line.

Usage: python -m dbtools [--migrations-dir PATH] [--connection URL] <command> [version]
"""
import argparse
import asyncio
import logging
import sys
from typing import Callable, Optional, Sequence

from dbtools.config import ConfigurationError, Settings, load_settings
from dbtools.core.migrations.migration_models import MigrationResult
from dbtools.services.database.factory import create_gateway
from dbtools.services.database.gateway import DatabaseGateway
from dbtools.services.database.migration_runner import MigrationRunner

logger = logging.getLogger("dbtools.cli")

COMMANDS = {
    "setup-db-latest": "Initialize database and update to the latest version",
    "setup-db-initial": "Initialize database with Initial migration only",
    "get-db-version": "Get current database version",
    "update-to-version": "Update database to specific version (e.g., 1.0.1)",
    "update-to-latest": "Update database to latest available version",
    "list-migrations": "List all available and executed migrations",
    "test-connection": "Test database connection",
}


def show_help() -> None:
    print("\nAvailable commands:")
    for name, help_text in COMMANDS.items():
        label = f"{name} <version>" if name == "update-to-version" else name
        print(f"  {label:<28} - {help_text}")
    print("\nOptions:")
    print("  --migrations-dir PATH        - Migrations root (default: ./migrations)")
    print("  --connection URL             - Overrides the configured connection string")


def print_result(result: MigrationResult, scripts_title: str = "Executed scripts:") -> int:
    if not result.success:
        print(f"❌ {result.message}")
        detail = result.error_detail
        if detail and detail not in result.message:
            print(f"   {detail}")
        return 1

    print(f"✅ {result.message}")
    if result.executed_scripts:
        print(f"\n{scripts_title}")
        for script in result.executed_scripts:
            print(f"  - {script}")
    return 0


async def setup_database_latest(runner: MigrationRunner) -> int:
    print("🚀 Setting up database with latest migrations...\n")

    setup_result = await runner.setup_database()
    if not setup_result.success:
        setup_result.message = f"Setup failed: {setup_result.message}"
        return print_result(setup_result)
    print_result(setup_result, "Executed setup scripts:")

    print("\n🔄 Updating to latest version...\n")
    update_result = await runner.update_to_latest()
    if not update_result.success:
        update_result.message = f"Update failed: {update_result.message}"
    return print_result(update_result, "Executed migration scripts:")


async def setup_database_initial(runner: MigrationRunner) -> int:
    print("🔧 Setting up database with initial migration only...\n")
    return print_result(await runner.setup_database())


async def get_database_version(gateway: DatabaseGateway) -> int:
    print("📋 Getting current database version...\n")

    if not await gateway.test_connection():
        print("❌ Cannot connect to database")
        return 1

    latest = await gateway.get_latest_version()
    if latest and latest.value is not None:
        print(f"Current database version: {latest.value}")
        return 0

    print("Database not initialized or no migrations executed")
    return 1


async def update_to_version(runner: MigrationRunner, target_version: str) -> int:
    print(f"🔄 Updating database to version {target_version}...\n")
    return print_result(await runner.update_to_version(target_version))


async def update_to_latest(runner: MigrationRunner) -> int:
    print("🔄 Updating database to latest version...\n")
    return print_result(await runner.update_to_latest())


async def list_migrations(runner: MigrationRunner) -> int:
    print("📋 Listing migrations...\n")

    entries = await runner.list_migrations()
    if not entries:
        print(f"No migrations found in {runner.registry.migrations_dir}")
        return 0

    print("Available migrations:")
    for entry in entries:
        if entry.executed:
            executed_at = entry.executed.executed_at.strftime("%Y-%m-%d %H:%M:%S")
            status = f"✅ Executed (executed: {executed_at})"
        else:
            status = "⏳ Pending"
        print(f"  {entry.migration.version} - {status}")
        if entry.migration.description:
            print(f"    Description: {entry.migration.description}")
        print(f"    Scripts: {', '.join(entry.migration.script_names)}")
    return 0


async def test_connection(gateway: DatabaseGateway) -> int:
    print("🔗 Testing database connection...\n")

    if await gateway.test_connection():
        print("✅ Database connection successful")
        return 0
    print("❌ Database connection failed")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbtools",
        description="Database migration tools",
        exit_on_error=False,
    )
    parser.add_argument("--migrations-dir", help="Migrations root (default: ./migrations)")
    parser.add_argument("--connection", help="Overrides the configured connection string")
    parser.add_argument("command", nargs="?", help="Command to run")
    parser.add_argument("version", nargs="?", help="Target version for update-to-version")
    return parser


async def run(argv: Sequence[str], settings_loader: Callable[..., Settings] = load_settings) -> int:
    print("Database Tools")
    print("==============")

    try:
        try:
            args, extra = build_parser().parse_known_args(argv)
        except argparse.ArgumentError as e:
            print(f"❌ {e}")
            return 1
        if extra:
            print(f"❌ Unrecognized arguments: {' '.join(extra)}")
            show_help()
            return 1

        if not args.command:
            show_help()
            return 0

        command = args.command.lower()
        if command not in COMMANDS:
            print(f"❌ Unknown command: {command}")
            show_help()
            return 1

        if command == "update-to-version" and not args.version:
            print("❌ Version number required. Usage: update-to-version 1.0.1")
            return 1

        try:
            settings = settings_loader(
                connection_string=args.connection,
                migrations_dir=args.migrations_dir,
            )
        except ConfigurationError as e:
            print(f"❌ {e}")
            return 1

        logging.getLogger("dbtools").setLevel(settings.log_level)

        gateway = create_gateway(settings.connection_string)
        runner = MigrationRunner(gateway, settings.migrations_dir)

        if command == "setup-db-latest":
            return await setup_database_latest(runner)
        if command == "setup-db-initial":
            return await setup_database_initial(runner)
        if command == "get-db-version":
            return await get_database_version(gateway)
        if command == "update-to-version":
            return await update_to_version(runner, args.version)
        if command == "update-to-latest":
            return await update_to_latest(runner)
        if command == "list-migrations":
            return await list_migrations(runner)
        return await test_connection(gateway)
    except Exception as e:
        print(f"❌ Fatal error: {e}")
        logger.debug("Unhandled error", exc_info=True)
        return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    return asyncio.run(run(sys.argv[1:] if argv is None else argv))


if __name__ == "__main__":
    raise SystemExit(main())
