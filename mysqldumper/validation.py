"""
Settings validation for MySQL Dumper.

Each check returns the problems it found instead of raising, so every issue
with a job can be reported before anything touches the server or the disk.
"""

import os
from pathlib import Path

from .errors import ConfigError
from .models import DatabaseDumpSettings, SplitMode, TableDumpSettings
from .splitter import is_safe_name


def validate_backup_directory(path: Path) -> list[ConfigError]:
    """Check that the backup directory exists and is writable."""
    path = Path(path)
    if not path.exists():
        return [ConfigError(f"{path} does not exist.")]
    if not path.is_dir():
        return [ConfigError(f"{path} is not a directory.")]
    if not os.access(path, os.W_OK | os.X_OK):
        return [ConfigError(f"{path} is not writeable.")]
    return []


def validate_database_settings(settings: DatabaseDumpSettings) -> list[ConfigError]:
    errors = validate_backup_directory(settings.backup_directory)

    if settings.connection.is_rds and settings.databases:
        errors.append(ConfigError("Cannot specify databases on RDS instances."))

    if settings.connection.is_rds and settings.master_data:
        errors.append(ConfigError("Cannot use master dumps on RDS."))

    if settings.master_data and settings.split_mode != SplitMode.SINGLE_FILE:
        errors.append(ConfigError("A master dump cannot be split into separate files."))

    if not settings.file_name:
        errors.append(ConfigError("file_name must not be empty."))

    return errors


def validate_table_settings(settings: TableDumpSettings) -> list[ConfigError]:
    errors = validate_backup_directory(settings.backup_directory)

    if not settings.database:
        errors.append(ConfigError("A table dump needs a database."))
    elif not is_safe_name(settings.database):
        errors.append(ConfigError(f"'{settings.database}' cannot be used as a folder name."))

    if not settings.tables:
        errors.append(ConfigError(f"No tables listed for database '{settings.database}'."))

    # Table dumps name their database on the command line, so mysqldump
    # never writes a "Current Database" marker to split on.
    if settings.split_mode == SplitMode.PER_DATABASE:
        errors.append(ConfigError("Table dumps can only be split per table."))

    if not settings.file_name:
        errors.append(ConfigError("file_name must not be empty."))

    return errors
