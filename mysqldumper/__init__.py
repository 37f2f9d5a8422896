"""
MySQL Dumper
============
Back up MySQL databases or tables with mysqldump, with support for:
- Dumping all databases or a selected set in one consistent snapshot
- Dumping selected tables of a single database
- Splitting the dump into one file per database or per table
- Choosing the consistency switch from the tables' storage engines
"""

from .cli import main
from .config import ConfigLoader
from .connection import DatabaseConnection
from .database_dumper import DatabaseDumper
from .errors import ConfigError, DumpCommandError, DumperError, DumpIOError, DumpParseError
from .models import (
    ConnectionSettings,
    ConsistencyMode,
    DatabaseDumpSettings,
    DumpResult,
    SplitMode,
    TableDumpSettings,
)
from .splitter import split_dump_file
from .table_dumper import TableDumper
from .utils import format_settings_display, print_dry_run_info, setup_logging

__version__ = "1.0.0"

__all__ = [
    # Main entry point
    "main",
    # Core classes
    "ConfigLoader",
    "DatabaseConnection",
    "DatabaseDumper",
    "TableDumper",
    "split_dump_file",
    # Models
    "ConnectionSettings",
    "ConsistencyMode",
    "DatabaseDumpSettings",
    "DumpResult",
    "SplitMode",
    "TableDumpSettings",
    # Errors
    "ConfigError",
    "DumpCommandError",
    "DumperError",
    "DumpIOError",
    "DumpParseError",
    # Utilities
    "format_settings_display",
    "print_dry_run_info",
    "setup_logging",
]
