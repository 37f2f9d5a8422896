"""
Whole-database dumping for MySQL Dumper.

All selected databases are dumped by a single mysqldump run so they share one
consistent snapshot. The default --lock-all-tables read-locks every database
on the server for the duration of the dump, including ones not being dumped.
If that hurts and cross-database consistency is not needed, configure one job
per group of databases that must stay consistent with each other.
"""

import logging
import time
from typing import Callable, Optional

from .command import build_database_command, run_dump
from .connection import DatabaseConnection
from .errors import ConfigError
from .models import ConnectionSettings, ConsistencyMode, DatabaseDumpSettings, DumpResult, SplitMode
from .splitter import split_dump_file
from .utils import collect_files, dump_file_path, warn_rds
from .validation import validate_database_settings


class DatabaseDumper:
    """Dumps databases with mysqldump and optionally splits the result."""

    def __init__(
        self,
        settings: DatabaseDumpSettings,
        connection_factory: Callable[[ConnectionSettings], DatabaseConnection] = DatabaseConnection,
        name: str = "databases"
    ):
        self.settings = settings
        self.connection_factory = connection_factory
        self.name = name

        if settings.connection.is_rds:
            warn_rds(settings.connection.host)

    def validate(self) -> list[ConfigError]:
        return validate_database_settings(self.settings)

    def list_databases(self) -> list[str]:
        """List the non-system databases on the server."""
        with self.connection_factory(self.settings.connection) as conn:
            return conn.get_databases()

    def resolve_settings(self) -> DatabaseDumpSettings:
        """Replace AUTO consistency with a concrete switch."""
        if self.settings.consistency != ConsistencyMode.AUTO:
            return self.settings

        with self.connection_factory(self.settings.connection) as conn:
            databases = list(self.settings.databases) or conn.get_databases()
            innodb_only = conn.all_innodb(databases)

        consistency = ConsistencyMode.SINGLE_TRANSACTION if innodb_only else ConsistencyMode.LOCK_ALL_TABLES
        logging.info(f"Using --{consistency.value} for {len(databases)} database(s)")
        return self.settings.with_consistency(consistency)

    def build_command(self, settings: Optional[DatabaseDumpSettings] = None) -> list[str]:
        return build_database_command(settings or self.settings)

    def run(self, timestamp: Optional[int] = None) -> DumpResult:
        """
        Dump the configured databases.

        Raises:
            ConfigError: the settings are invalid; nothing has been run.
            DumpCommandError: mysqldump failed.
            DumpIOError, DumpParseError: splitting the dump failed. The
                unsplit dump file is kept.
        """
        errors = self.validate()
        if errors:
            for error in errors[1:]:
                logging.error(f"{self.name}: {error}")
            raise errors[0]

        settings = self.resolve_settings()
        timestamp = timestamp if timestamp is not None else int(time.time())
        dump_file = dump_file_path(settings.backup_directory, settings.file_name, timestamp, settings.use_timestamp)

        target = ', '.join(settings.databases) if settings.databases else 'all databases'
        logging.info(f"Dumping {target} to '{dump_file}'")
        run_dump(self.build_command(settings), dump_file, settings.connection.password)

        result = DumpResult(name=self.name, dump_file=dump_file)
        if settings.split_mode == SplitMode.SINGLE_FILE:
            result.files = [dump_file]
        else:
            result.output_root = split_dump_file(
                dump_file, settings.backup_directory, timestamp, settings.split_mode
            )
            result.files = collect_files(result.output_root)

        result.success = True
        return result
