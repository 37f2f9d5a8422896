"""
Configuration loading for MySQL Dumper.

Example::

    instances:
      primary:
        host: localhost
        user: backup
        password: ${MYSQL_PASSWORD}

    output:
      directory: ./dumps

    jobs:
      - name: nightly
        type: databases
        databases: [shop, crm]
        split: table
      - name: orders
        type: tables
        database: shop
        tables: [orders, order_items]
"""

import os
import re
from enum import Enum
from pathlib import Path
from typing import Any, Optional, TypeVar

import yaml

from .database_dumper import DatabaseDumper
from .errors import ConfigError
from .models import ConnectionSettings, ConsistencyMode, DatabaseDumpSettings, SplitMode, TableDumpSettings
from .table_dumper import TableDumper

E = TypeVar('E', bound=Enum)

JOB_TYPES = ('databases', 'tables')
TRUE_VALUES = ('true', 'yes', 'on', '1')
FALSE_VALUES = ('false', 'no', 'off', '0', '')


class ConfigLoader:
    """Loads configuration from a YAML file and builds dumpers from its jobs."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')

    def __init__(self, config_path: str):
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(self.config_path, 'r') as f:
            config = yaml.safe_load(f) or {}

        return self._resolve_env_vars(config)

    def _resolve_env_vars(self, obj: Any) -> Any:
        """Recursively resolve environment variables in config."""
        if isinstance(obj, str):
            matches = self.ENV_VAR_PATTERN.findall(obj)
            for match in matches:
                env_value = os.environ.get(match, '')
                obj = obj.replace(f'${{{match}}}', env_value)
            return obj
        elif isinstance(obj, dict):
            return {k: self._resolve_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._resolve_env_vars(item) for item in obj]
        return obj

    def get_instance(self, instance_name: str) -> dict[str, Any]:
        """Get database instance configuration."""
        instances = self.config.get('instances', {})
        if instance_name not in instances:
            raise ConfigError(f"Instance '{instance_name}' not found in configuration")
        return instances[instance_name]

    def get_jobs(self) -> list[dict[str, Any]]:
        """Get list of dump jobs."""
        return self.config.get('jobs', [])

    def get_output_settings(self) -> dict[str, Any]:
        """Get output settings."""
        return self.config.get('output', {})

    def get_logging_settings(self) -> dict[str, Any]:
        """Get logging settings."""
        return self.config.get('logging', {})

    def filter_jobs(
        self,
        job_filter: Optional[str] = None,
        instance_filter: Optional[str] = None
    ) -> list[dict[str, Any]]:
        jobs = self.get_jobs()
        if job_filter:
            jobs = [job for job in jobs if job.get('name') == job_filter]
        if instance_filter:
            jobs = [job for job in jobs if job.get('instance', 'primary') == instance_filter]
        return jobs

    def build_connection(self, instance_name: str) -> ConnectionSettings:
        instance = self.get_instance(instance_name)
        try:
            return ConnectionSettings(
                host=instance['host'],
                user=instance['user'],
                password=str(instance.get('password') or ''),
                port=int(instance.get('port', 3306))
            )
        except KeyError as e:
            raise ConfigError(f"Instance '{instance_name}' is missing {e}") from e
        except ValueError as e:
            raise ConfigError(f"Instance '{instance_name}' has an invalid port: {e}") from e

    def build_dumper(self, job: dict[str, Any]) -> DatabaseDumper | TableDumper:
        """Build the dumper for one job entry."""
        job_type = job.get('type', 'databases')
        if job_type not in JOB_TYPES:
            raise ConfigError(f"Unknown job type '{job_type}', expected one of {', '.join(JOB_TYPES)}")

        output = self.get_output_settings()
        common = {
            'connection': self.build_connection(job.get('instance', 'primary')),
            'backup_directory': Path(job.get('directory', output.get('directory', './dumps'))),
            'use_timestamp': _parse_bool(
                job.get('timestamp_prefix', output.get('timestamp_prefix', True)), 'timestamp_prefix'
            ),
            'file_name': job.get('file_name', output.get('file_name', 'backup.sql')),
        }

        if job_type == 'databases':
            settings = DatabaseDumpSettings(
                databases=tuple(job.get('databases') or ()),
                split_mode=_parse_enum(SplitMode, job.get('split', 'none'), 'split'),
                consistency=_parse_enum(ConsistencyMode, job.get('consistency', 'lock-all-tables'), 'consistency'),
                master_data=_parse_bool(job.get('master_data', False), 'master_data'),
                **common
            )
            return DatabaseDumper(settings, name=job.get('name', 'databases'))

        if 'database' not in job:
            raise ConfigError(f"Table job '{job.get('name', '?')}' needs a 'database'")

        settings = TableDumpSettings(
            database=job['database'],
            tables=tuple(job.get('tables') or ()),
            split_mode=_parse_enum(SplitMode, job.get('split', 'table'), 'split'),
            consistency=_parse_enum(ConsistencyMode, job.get('consistency', 'lock-tables'), 'consistency'),
            one_row_per_insert=_parse_bool(job.get('one_row_per_insert', True), 'one_row_per_insert'),
            complete_insert=_parse_bool(job.get('complete_insert', True), 'complete_insert'),
            transfer_compression=_parse_optional_bool(job.get('transfer_compression'), 'transfer_compression'),
            skip_comments=_parse_bool(job.get('skip_comments', True), 'skip_comments'),
            **common
        )
        return TableDumper(settings, name=job.get('name'))

    def build_dumpers(
        self,
        job_filter: Optional[str] = None,
        instance_filter: Optional[str] = None
    ) -> list[DatabaseDumper | TableDumper]:
        return [self.build_dumper(job) for job in self.filter_jobs(job_filter, instance_filter)]


def _parse_enum(enum_type: type[E], value: Any, key: str) -> E:
    try:
        return enum_type(str(value).lower())
    except ValueError as e:
        allowed = ', '.join(member.value for member in enum_type)
        raise ConfigError(f"Invalid {key} '{value}', expected one of {allowed}") from e


def _parse_bool(value: Any, key: str) -> bool:
    # ${VAR} substitution leaves flags as strings
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid {key} '{value}', expected true or false")


def _parse_optional_bool(value: Any, key: str) -> Optional[bool]:
    if value is None or str(value).strip().lower() == 'auto':
        return None
    return _parse_bool(value, key)
