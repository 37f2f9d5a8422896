#!/usr/bin/env python3
"""
MySQL Dumper - CLI Entry Point
==============================
Back up MySQL databases or tables with mysqldump, optionally split into:
- One file per database
- One file per table, grouped in a folder per database

Split dumps are restored with: cat <folder>/*.sql | mysql -u <user> -p <database>
"""

import argparse
import logging
import sys
import time
from pathlib import Path

import yaml
from mysql.connector import Error as MySQLError

from .config import ConfigLoader
from .database_dumper import DatabaseDumper
from .errors import DumperError
from .models import DumpResult
from .table_dumper import TableDumper
from .utils import print_dry_run_info, setup_logging


def run_jobs(dumpers: list[DatabaseDumper | TableDumper]) -> list[DumpResult]:
    """Run every dumper, recording failures instead of stopping at the first one."""
    results = []
    used: set[tuple[Path, int]] = set()

    for dumper in dumpers:
        # each job needs its own timestamp folder within a backup directory
        directory = Path(dumper.settings.backup_directory).resolve()
        timestamp = int(time.time())
        while (directory, timestamp) in used:
            timestamp += 1
        used.add((directory, timestamp))

        try:
            result = dumper.run(timestamp=timestamp)
            logging.info(f"  ✓ {result.name}: {len(result.files)} file(s)")
        except (DumperError, MySQLError, OSError) as e:
            logging.error(f"  ✗ {dumper.name}: {e}")
            result = DumpResult(name=dumper.name, error=str(e))
        results.append(result)

    return results


def list_databases(dumpers: list[DatabaseDumper | TableDumper]) -> None:
    for dumper in dumpers:
        if not isinstance(dumper, DatabaseDumper):
            continue
        logging.info(f"Databases for job '{dumper.name}':")
        for name in dumper.list_databases():
            logging.info(f"  - {name}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='MySQL Dumper - mysqldump backups split per database or table'
    )
    parser.add_argument(
        '-c', '--config',
        default='config.yaml',
        help='Path to configuration file (default: config.yaml)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show the commands that would run without running them'
    )
    parser.add_argument(
        '--list-databases',
        action='store_true',
        help='List the databases on the servers of the selected jobs and exit'
    )
    parser.add_argument(
        '-j', '--job',
        help='Run only the named job (must be defined in config)'
    )
    parser.add_argument(
        '-i', '--instance',
        help='Run only jobs for the specified instance'
    )

    args = parser.parse_args()

    # Load configuration
    try:
        config = ConfigLoader(args.config)
    except FileNotFoundError:
        print(f"Error: Configuration file '{args.config}' not found")
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file: {e}")
        sys.exit(1)

    # Setup logging
    log_settings = config.get_logging_settings()
    if args.verbose:
        log_settings['level'] = 'DEBUG'
    setup_logging(log_settings)

    try:
        dumpers = config.build_dumpers(job_filter=args.job, instance_filter=args.instance)
    except DumperError as e:
        logging.error(f"Configuration error: {e}")
        sys.exit(1)

    if not dumpers:
        logging.warning("No jobs matched the given filters")

    if args.dry_run:
        logging.info("DRY RUN MODE - Nothing will be dumped")
        print_dry_run_info(dumpers)
        sys.exit(0)

    if args.list_databases:
        try:
            list_databases(dumpers)
        except MySQLError as e:
            logging.error(f"Could not list databases: {e}")
            sys.exit(1)
        sys.exit(0)

    results = run_jobs(dumpers)

    # Print summary
    logging.info("=" * 50)
    logging.info("DUMP COMPLETE")
    logging.info(f"Jobs: {len(results)}")
    logging.info(f"Files: {sum(len(r.files) for r in results)}")

    failed = [r for r in results if not r.success]
    if failed:
        logging.warning(f"Errors: {len(failed)}")
        for result in failed:
            logging.warning(f"  - {result.name}: {result.error}")
        sys.exit(1)


if __name__ == '__main__':
    main()
