"""
mysqldump invocation for MySQL Dumper.

Commands are built as argument vectors and run without a shell, so database
and table names never pass through shell parsing. The password travels in the
MYSQL_PWD environment variable rather than on the command line.
"""

import logging
import os
import shlex
import subprocess
from pathlib import Path

from .errors import DumpCommandError, DumpIOError
from .models import ConnectionSettings, DatabaseDumpSettings, TableDumpSettings

MYSQLDUMP = "mysqldump"


def connection_args(connection: ConnectionSettings) -> list[str]:
    return [
        "--host", connection.host,
        "--port", str(connection.port),
        "--user", connection.user,
    ]


def build_database_command(settings: DatabaseDumpSettings) -> list[str]:
    """Build the mysqldump argument vector for a database dump."""
    cmd = [MYSQLDUMP, *connection_args(settings.connection)]

    if settings.databases:
        cmd += ["--databases", *settings.databases]
    else:
        cmd.append("--all-databases")

    if settings.consistency.switch:
        cmd.append(settings.consistency.switch)

    if settings.master_data:
        cmd.append("--master-data")

    return cmd


def build_table_command(settings: TableDumpSettings) -> list[str]:
    """Build the mysqldump argument vector for a table dump."""
    cmd = [MYSQLDUMP, *connection_args(settings.connection)]

    if settings.consistency.switch:
        cmd.append(settings.consistency.switch)
    if settings.one_row_per_insert:
        cmd.append("--extended-insert=FALSE")
    if settings.complete_insert:
        cmd.append("--complete-insert")
    if settings.use_transfer_compression:
        cmd.append("--compress")
    if settings.skip_comments:
        cmd.append("--skip-comments")

    cmd += [settings.database, *settings.tables]
    return cmd


def describe_command(cmd: list[str]) -> str:
    """Render a command for display."""
    return shlex.join(cmd)


def run_dump(cmd: list[str], output_path: Path, password: str = "") -> Path:
    """
    Run mysqldump with stdout redirected to output_path.

    Raises:
        DumpIOError: the output file cannot be created.
        DumpCommandError: the binary is missing or exits non-zero.
    """
    env = os.environ.copy()
    if password:
        env["MYSQL_PWD"] = password
    else:
        env.pop("MYSQL_PWD", None)

    logging.info(f"Executing: {describe_command(cmd)} > {output_path}")
    logging.info("This may take a long time.")

    try:
        output = open(output_path, 'wb')
    except OSError as e:
        raise DumpIOError(f"Cannot create dump file '{output_path}': {e}") from e

    try:
        with output:
            result = subprocess.run(
                cmd,
                stdout=output,
                stderr=subprocess.PIPE,
                env=env,
                check=False
            )
    except FileNotFoundError as e:
        raise DumpCommandError(
            f"'{cmd[0]}' not found. Ensure the MySQL client tools are installed."
        ) from e
    except OSError as e:
        raise DumpCommandError(str(e)) from e

    stderr = result.stderr.decode(errors='replace').strip() if result.stderr else ""
    if result.returncode != 0:
        logging.error(f"{cmd[0]} exited with status {result.returncode}: {stderr}")
        raise DumpCommandError(
            f"{cmd[0]} exited with status {result.returncode}",
            returncode=result.returncode,
            stderr=stderr
        )

    if stderr:
        logging.warning(f"{cmd[0]}: {stderr}")

    return Path(output_path)
