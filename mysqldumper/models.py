"""
Data models and enums for MySQL Dumper.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Optional


class SplitMode(Enum):
    """Output topology for a dump."""
    SINGLE_FILE = "none"
    PER_DATABASE = "database"
    PER_DATABASE_AND_TABLE = "table"


class ConsistencyMode(Enum):
    """Snapshot switch handed to mysqldump."""
    LOCK_ALL_TABLES = "lock-all-tables"
    LOCK_TABLES = "lock-tables"
    SINGLE_TRANSACTION = "single-transaction"
    NONE = "none"
    AUTO = "auto"

    @property
    def switch(self) -> Optional[str]:
        if self in (ConsistencyMode.NONE, ConsistencyMode.AUTO):
            return None
        return f"--{self.value}"


@dataclass(frozen=True)
class ConnectionSettings:
    """Credentials and address of a MySQL server."""
    host: str
    user: str
    password: str = field(default="", repr=False)
    port: int = 3306

    @property
    def is_rds(self) -> bool:
        return 'rds.amazonaws.com' in self.host.lower()

    @property
    def is_local(self) -> bool:
        return self.host.lower() in ('localhost', '127.0.0.1')


def _force_rds_consistency(settings, default: ConsistencyMode) -> None:
    """Switch RDS dumps to --single-transaction, warning when an explicit choice is replaced."""
    if not settings.connection.is_rds or settings.consistency == ConsistencyMode.SINGLE_TRANSACTION:
        return
    if settings.consistency not in (default, ConsistencyMode.AUTO):
        logging.warning(
            f"Consistency '{settings.consistency.value}' is not available on RDS "
            f"({settings.connection.host}), using single-transaction"
        )
    object.__setattr__(settings, 'consistency', ConsistencyMode.SINGLE_TRANSACTION)


@dataclass(frozen=True)
class DatabaseDumpSettings:
    """Settings for dumping whole databases (all of them when none are listed)."""
    connection: ConnectionSettings
    backup_directory: Path
    databases: tuple[str, ...] = ()
    split_mode: SplitMode = SplitMode.SINGLE_FILE
    consistency: ConsistencyMode = ConsistencyMode.LOCK_ALL_TABLES
    master_data: bool = False
    use_timestamp: bool = True
    file_name: str = "backup.sql"

    def __post_init__(self):
        object.__setattr__(self, 'backup_directory', Path(self.backup_directory))
        object.__setattr__(self, 'databases', tuple(dict.fromkeys(self.databases)))
        # RDS does not grant the privileges needed for global read locks
        _force_rds_consistency(self, ConsistencyMode.LOCK_ALL_TABLES)

    def with_consistency(self, consistency: ConsistencyMode) -> "DatabaseDumpSettings":
        return replace(self, consistency=consistency)


@dataclass(frozen=True)
class TableDumpSettings:
    """Settings for dumping selected tables of a single database."""
    connection: ConnectionSettings
    backup_directory: Path
    database: str
    tables: tuple[str, ...]
    split_mode: SplitMode = SplitMode.PER_DATABASE_AND_TABLE
    consistency: ConsistencyMode = ConsistencyMode.LOCK_TABLES
    one_row_per_insert: bool = True
    complete_insert: bool = True
    transfer_compression: Optional[bool] = None
    skip_comments: bool = True
    use_timestamp: bool = True
    file_name: str = "backup.sql"

    def __post_init__(self):
        object.__setattr__(self, 'backup_directory', Path(self.backup_directory))
        object.__setattr__(self, 'tables', tuple(self.tables))
        _force_rds_consistency(self, ConsistencyMode.LOCK_TABLES)

    @property
    def use_transfer_compression(self) -> bool:
        """Compress client/server traffic unless explicitly set or the server is local."""
        if self.transfer_compression is None:
            return not self.connection.is_local
        return self.transfer_compression

    def with_consistency(self, consistency: ConsistencyMode) -> "TableDumpSettings":
        return replace(self, consistency=consistency)


@dataclass
class DumpResult:
    """Outcome of a single dump job."""
    name: str
    dump_file: Optional[Path] = None
    output_root: Optional[Path] = None
    files: list[Path] = field(default_factory=list)
    success: bool = False
    error: Optional[str] = None
