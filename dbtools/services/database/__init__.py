"""
Database Services

- gateway: capability interface and shared SQL implementation
- postgres_gateway / mariadb_gateway: engine implementations
- migration_runner: setup and version updates
"""

from dbtools.services.database.factory import create_gateway
from dbtools.services.database.gateway import DatabaseGateway
from dbtools.services.database.mariadb_gateway import MariaDbGateway
from dbtools.services.database.migration_runner import MigrationError, MigrationRunner
from dbtools.services.database.postgres_gateway import PostgresGateway

__all__ = [
    "DatabaseGateway",
    "MariaDbGateway",
    "MigrationError",
    "MigrationRunner",
    "PostgresGateway",
    "create_gateway",
]
