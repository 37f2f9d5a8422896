"""
Split a monolithic mysqldump file into per-database or per-table files.

The dump is read one line at a time since it can be far larger than memory.
Sections are found by the marker lines mysqldump writes:

    -- Current Database: `shop`
    DROP TABLE IF EXISTS `orders`;

Lines before the first marker have nowhere to go and are dropped. A dump
without any marker therefore yields an empty output directory; callers
should check how many files were produced.

Split dumps are restored by concatenating them back into the client:

    cat 1700000000/shop/*.sql | mysql -u root -p shop
"""

import logging
import os
from pathlib import Path
from typing import BinaryIO, Optional

from .errors import ConfigError, DumpIOError, DumpParseError
from .models import SplitMode

DATABASE_MARKER = b"Current Database:"
TABLE_MARKER = b"DROP TABLE"


def is_safe_name(name: str) -> bool:
    """True when name can be used as a single file or folder name."""
    if not name or name in ('.', '..'):
        return False
    return not any(c in name for c in ('/', os.sep, '\x00'))


def extract_name(line: bytes, line_number: int) -> str:
    """Return the identifier between the first two backticks of a marker line."""
    parts = line.split(b"`", 2)
    if len(parts) < 3:
        raise DumpParseError("Marker without a backtick-quoted name", line_number, line.decode(errors='replace'))

    name = os.fsdecode(parts[1])
    if not is_safe_name(name):
        raise DumpParseError(f"Unusable name '{name}' in marker", line_number, line.decode(errors='replace'))
    return name


def split_dump_file(
    source_path: Path,
    destination_root: Path,
    timestamp: str | int,
    split_mode: SplitMode,
    database_name: Optional[str] = None
) -> Path:
    """
    Split a dump file into ``destination_root/timestamp/``.

    Args:
        source_path: Dump produced by mysqldump. Deleted once the split succeeds.
        destination_root: Directory that receives the timestamp folder.
        timestamp: Run discriminator used as the folder name.
        split_mode: PER_DATABASE or PER_DATABASE_AND_TABLE.
        database_name: Folder to use for table markers when the dump has no
            database markers (single database table dumps).

    Returns:
        Path of the folder holding the split files.

    Raises:
        ConfigError: split_mode is SINGLE_FILE or database_name is not a
            usable folder name.
        DumpIOError: the source cannot be read or the output cannot be written.
        DumpParseError: a marker line has no usable name.
    """
    if split_mode == SplitMode.SINGLE_FILE:
        raise ConfigError("Nothing to split in single file mode")
    if database_name is not None and not is_safe_name(database_name):
        raise ConfigError(f"'{database_name}' cannot be used as a folder name")

    source_path = Path(source_path)
    target_root = Path(destination_root) / str(timestamp)
    by_table = split_mode == SplitMode.PER_DATABASE_AND_TABLE

    logging.info(f"Splitting '{source_path}' into '{target_root}' ({split_mode.value})")

    try:
        target_root.mkdir()
        database_folder = None
        if by_table and database_name:
            database_folder = target_root / database_name
            database_folder.mkdir()

        files_written = _split_lines(source_path, target_root, by_table, database_folder)
        source_path.unlink()
    except OSError as e:
        raise DumpIOError(f"Failed to split '{source_path}': {e}") from e

    if files_written == 0:
        logging.warning(f"No split markers found in '{source_path}', '{target_root}' is empty")
    else:
        logging.info(f"Split complete: {files_written} file(s) in '{target_root}'")

    return target_root


def _split_lines(
    source_path: Path,
    target_root: Path,
    by_table: bool,
    database_folder: Optional[Path]
) -> int:
    """Route every line of the source to the current output file. Returns the file count."""
    output: Optional[BinaryIO] = None
    files_written = 0

    try:
        with open(source_path, 'rb') as source:
            for line_number, line in enumerate(source, start=1):
                if DATABASE_MARKER in line:
                    database = extract_name(line, line_number)
                    if output:
                        output.close()
                        output = None

                    if by_table:
                        database_folder = target_root / database
                        database_folder.mkdir(exist_ok=True)
                        logging.debug(f"Database section '{database}'")
                    else:
                        output = open(target_root / f"{database}.sql", 'wb')
                        files_written += 1
                        logging.debug(f"Writing database '{database}'")
                    continue

                if by_table and TABLE_MARKER in line:
                    table = extract_name(line, line_number)
                    if database_folder is None:
                        raise DumpParseError(
                            f"Table '{table}' appears before any database", line_number,
                            line.decode(errors='replace')
                        )
                    if output:
                        output.close()
                    output = open(database_folder / f"{table}.sql", 'wb')
                    files_written += 1
                    logging.debug(f"Writing table '{database_folder.name}.{table}'")

                if output:
                    output.write(line)
    finally:
        if output:
            output.close()

    return files_written
