"""
Utility functions for MySQL Dumper.
"""

import logging
import sys
from pathlib import Path
from typing import Any

from .command import describe_command

RDS_WARNING = (
    "Snapshotting an RDS instance ({host}). --single-transaction is used, which "
    "can still leave non-transactional tables such as MyISAM inconsistent. "
    "Master dumps and explicit database lists are not available on RDS."
)


def setup_logging(log_settings: dict[str, Any]) -> None:
    """Setup logging configuration."""
    log_level = getattr(logging, log_settings.get('level', 'INFO').upper())
    log_file = log_settings.get('file')

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def warn_rds(host: str) -> None:
    logging.warning(RDS_WARNING.format(host=host))


def dump_file_path(directory: Path, file_name: str, timestamp: int | str, use_timestamp: bool) -> Path:
    """Path of the raw mysqldump output, prefixed with the run timestamp if enabled."""
    if use_timestamp:
        file_name = f"{timestamp}_{file_name}"
    return Path(directory) / file_name


def collect_files(root: Path) -> list[Path]:
    """All files below root, sorted."""
    return sorted(path for path in Path(root).rglob('*') if path.is_file())


def print_dry_run_info(jobs: list[Any]) -> None:
    """Log what each dumper would run in dry-run mode."""
    for dumper in jobs:
        settings = dumper.settings
        connection = settings.connection
        logging.info(f"Would run job: {dumper.name} on {connection.host}:{connection.port}")

        for error in dumper.validate():
            logging.warning(f"  ! {error}")

        logging.info(f"  Command: {describe_command(dumper.build_command())}")
        logging.info(f"  Split: {settings.split_mode.value}")
        for part in format_settings_display(settings):
            logging.info(f"  - {part}")


def format_settings_display(settings: Any) -> list[str]:
    """Format settings for display in dry-run mode."""
    parts = [f"directory={settings.backup_directory}"]
    if getattr(settings, 'databases', None):
        parts.append(f"databases={', '.join(settings.databases)}")
    if getattr(settings, 'tables', None):
        parts.append(f"tables={', '.join(settings.tables)}")
    if settings.consistency.value != 'none':
        parts.append(f"consistency={settings.consistency.value}")
    if not settings.use_timestamp:
        parts.append("no timestamp prefix")
    return parts
