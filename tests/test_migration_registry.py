"""
Tests for migration discovery and version ordering.
"""
import random

import pytest

from dbtools.core.migrations.migration_models import (
    BASELINE_VERSION,
    DESCRIPTION_MAX_LENGTH,
    is_valid_version,
    parse_version,
)
from dbtools.core.migrations.migration_registry import MigrationRegistry

from conftest import write_migration


@pytest.mark.parametrize("version, expected", [
    ("1.0.1", (1, 0, 1, 0)),
    ("1.0", (1, 0, 0, 0)),
    ("2.10.3.4", (2, 10, 3, 4)),
    ("Initial", (0, 0, 0, 0)),
    ("not-a-version", (0, 0, 0, 0)),
    ("1", (0, 0, 0, 0)),
    ("1.2.3.4.5", (0, 0, 0, 0)),
    ("", (0, 0, 0, 0)),
])
def test_parse_version(version, expected):
    assert parse_version(version) == expected


def test_numeric_not_lexicographic_ordering():
    assert parse_version("1.10.0") > parse_version("1.9.0")
    assert parse_version("1.0") == parse_version("1.0.0")


def test_is_valid_version():
    assert is_valid_version(BASELINE_VERSION)
    assert is_valid_version("1.0.1")
    assert not is_valid_version("latest")
    assert not is_valid_version(None)


def test_missing_directory_returns_empty(tmp_path):
    registry = MigrationRegistry(tmp_path / "does-not-exist")
    assert registry.discover_migrations() == []


def test_baseline_first_then_ascending(migrations_dir):
    versions = ["1.10.0", "1.2.0", BASELINE_VERSION, "1.0.1", "2.0.0", "1.9.9"]
    random.shuffle(versions)
    for version in versions:
        write_migration(migrations_dir, version, {"1_script.sql": "SELECT 1;"})

    found = [m.version for m in MigrationRegistry(migrations_dir).discover_migrations()]
    assert found == [BASELINE_VERSION, "1.0.1", "1.2.0", "1.9.9", "1.10.0", "2.0.0"]


def test_malformed_version_sorts_as_zero(migrations_dir):
    write_migration(migrations_dir, "1.0.1", {"1.sql": "SELECT 1;"})
    write_migration(migrations_dir, "hotfix", {"1.sql": "SELECT 1;"})
    write_migration(migrations_dir, BASELINE_VERSION, {"1.sql": "SELECT 1;"})

    found = [m.version for m in MigrationRegistry(migrations_dir).discover_migrations()]
    assert found == [BASELINE_VERSION, "hotfix", "1.0.1"]


def test_scripts_sorted_by_ordinal_filename(migrations_dir):
    write_migration(migrations_dir, "1.0.1", {
        "2_b.sql": "SELECT 2;",
        "1_a.sql": "SELECT 1;",
        "B_upper.sql": "SELECT 3;",
        "a_lower.sql": "SELECT 4;",
        "notes.md": "not sql",
    })

    migration = MigrationRegistry(migrations_dir).get_migration("1.0.1")
    # ordinal comparison puts digits, then upper case, then lower case
    assert migration.script_names == ["1_a.sql", "2_b.sql", "B_upper.sql", "a_lower.sql"]


def test_folders_without_sql_are_skipped(migrations_dir):
    write_migration(migrations_dir, "1.0.1", {"README.md": "nothing to run"})
    write_migration(migrations_dir, "1.0.2", {"1.sql": "SELECT 1;"})
    (migrations_dir / "stray.sql").write_text("SELECT 1;")

    found = [m.version for m in MigrationRegistry(migrations_dir).discover_migrations()]
    assert found == ["1.0.2"]


def test_description_is_read_and_truncated(migrations_dir):
    write_migration(migrations_dir, "1.0.1", {"1.sql": "SELECT 1;"}, description="Adds a column")
    write_migration(migrations_dir, "1.0.2", {"1.sql": "SELECT 1;"}, description="x" * 600)
    write_migration(migrations_dir, "1.0.3", {"1.sql": "SELECT 1;"})

    registry = MigrationRegistry(migrations_dir)
    assert registry.get_migration("1.0.1").description == "Adds a column"
    long_description = registry.get_migration("1.0.2").description
    assert long_description == "x" * DESCRIPTION_MAX_LENGTH + "..."
    assert registry.get_migration("1.0.3").description is None


def test_readme_takes_precedence_over_description_txt(migrations_dir):
    folder = write_migration(migrations_dir, "1.0.1", {"1.sql": "SELECT 1;"}, description="from txt")
    (folder / "README.md").write_text("from readme")

    assert MigrationRegistry(migrations_dir).get_migration("1.0.1").description == "from readme"


def test_rescans_on_every_call(migrations_dir):
    registry = MigrationRegistry(migrations_dir)
    write_migration(migrations_dir, BASELINE_VERSION, {"1.sql": "SELECT 1;"})
    assert len(registry.discover_migrations()) == 1

    write_migration(migrations_dir, "1.0.1", {"1.sql": "SELECT 1;"})
    assert len(registry.discover_migrations()) == 2


def test_latest_versioned_ignores_baseline(migrations_dir):
    registry = MigrationRegistry(migrations_dir)
    write_migration(migrations_dir, BASELINE_VERSION, {"1.sql": "SELECT 1;"})
    assert registry.get_latest_versioned() is None

    write_migration(migrations_dir, "1.2.0", {"1.sql": "SELECT 1;"})
    write_migration(migrations_dir, "1.10.0", {"1.sql": "SELECT 1;"})
    assert registry.get_latest_versioned().version == "1.10.0"
    assert registry.get_baseline().is_baseline
