"""
Settings

The connection string comes from appsettings.json
(ConnectionStrings.DefaultConnection) and can be overridden by the
environment, either as ConnectionStrings__DefaultConnection or DATABASE_URL.
A .env file in the base directory is loaded first without overriding
variables that are already set.
"""
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dotenv import load_dotenv

logger = logging.getLogger("dbtools.config")

SETTINGS_FILE = "appsettings.json"
CONNECTION_ENV_VARS = ("DATABASE_URL", "ConnectionStrings__DefaultConnection")


class ConfigurationError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    connection_string: str
    migrations_dir: Path
    log_level: str = "INFO"


def _read_json(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e


def _connection_from_file(data: Dict[str, Any]) -> Optional[str]:
    section = data.get("ConnectionStrings") or {}
    value = section.get("DefaultConnection") if isinstance(section, dict) else None
    return value.strip() if isinstance(value, str) and value.strip() else None


def load_settings(
    base_dir: Optional[Union[str, Path]] = None,
    connection_string: Optional[str] = None,
    migrations_dir: Optional[Union[str, Path]] = None,
) -> Settings:
    """
    Resolve settings for the current run. Explicit arguments win over the
    environment, which wins over appsettings.json.

    Raises:
        ConfigurationError: If no connection string is configured.
    """
    base = Path(base_dir) if base_dir else Path.cwd()
    load_dotenv(dotenv_path=base / ".env", override=False)

    file_settings = _read_json(base / SETTINGS_FILE)

    resolved = connection_string
    if not resolved:
        for name in CONNECTION_ENV_VARS:
            value = os.getenv(name, "").strip()
            if value:
                logger.debug(f"Connection string taken from {name}")
                resolved = value
                break
    if not resolved:
        resolved = _connection_from_file(file_settings)
    if not resolved:
        raise ConfigurationError(
            "Connection string not found. Check appsettings.json or environment variables."
        )

    if migrations_dir:
        migrations = Path(migrations_dir)
    elif os.getenv("MIGRATIONS_DIR"):
        migrations = Path(os.environ["MIGRATIONS_DIR"])
    else:
        migrations = base / file_settings.get("MigrationsPath", "migrations")

    return Settings(
        connection_string=resolved,
        migrations_dir=migrations,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
