"""
Table dumping for MySQL Dumper.
"""

import logging
import time
from typing import Callable, Optional

from .command import build_table_command, run_dump
from .connection import DatabaseConnection
from .errors import ConfigError
from .models import ConnectionSettings, ConsistencyMode, DumpResult, SplitMode, TableDumpSettings
from .splitter import split_dump_file
from .utils import collect_files, dump_file_path, warn_rds
from .validation import validate_table_settings


class TableDumper:
    """Dumps selected tables of one database, one file per table by default."""

    def __init__(
        self,
        settings: TableDumpSettings,
        connection_factory: Callable[[ConnectionSettings], DatabaseConnection] = DatabaseConnection,
        name: Optional[str] = None
    ):
        self.settings = settings
        self.connection_factory = connection_factory
        self.name = name or settings.database

        if settings.connection.is_rds:
            warn_rds(settings.connection.host)

    def validate(self) -> list[ConfigError]:
        return validate_table_settings(self.settings)

    def resolve_settings(self) -> TableDumpSettings:
        """Replace AUTO consistency with a concrete switch."""
        if self.settings.consistency != ConsistencyMode.AUTO:
            return self.settings

        with self.connection_factory(self.settings.connection) as conn:
            innodb_only = conn.all_innodb([self.settings.database], list(self.settings.tables))

        consistency = ConsistencyMode.SINGLE_TRANSACTION if innodb_only else ConsistencyMode.LOCK_TABLES
        logging.info(f"Using --{consistency.value} for '{self.settings.database}'")
        return self.settings.with_consistency(consistency)

    def build_command(self, settings: Optional[TableDumpSettings] = None) -> list[str]:
        return build_table_command(settings or self.settings)

    def run(self, timestamp: Optional[int] = None) -> DumpResult:
        """
        Dump the configured tables.

        Raises:
            ConfigError: the settings are invalid; nothing has been run.
            DumpCommandError: mysqldump failed.
            DumpIOError, DumpParseError: splitting the dump failed.
        """
        errors = self.validate()
        if errors:
            for error in errors[1:]:
                logging.error(f"{self.name}: {error}")
            raise errors[0]

        settings = self.resolve_settings()
        timestamp = timestamp if timestamp is not None else int(time.time())
        dump_file = dump_file_path(settings.backup_directory, settings.file_name, timestamp, settings.use_timestamp)

        logging.info(f"Dumping {len(settings.tables)} table(s) from '{settings.database}' to '{dump_file}'")
        run_dump(self.build_command(settings), dump_file, settings.connection.password)

        result = DumpResult(name=self.name, dump_file=dump_file)
        if settings.split_mode == SplitMode.SINGLE_FILE:
            result.files = [dump_file]
        else:
            result.output_root = split_dump_file(
                dump_file,
                settings.backup_directory,
                timestamp,
                settings.split_mode,
                database_name=settings.database
            )
            result.files = collect_files(result.output_root)

        result.success = True
        return result
