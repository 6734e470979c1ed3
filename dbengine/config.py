#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Configuration loading and logging setup.

Config files are JSON by default, YAML when the name ends in ``.yaml``
or ``.yml``:

    {
        "database_url": "postgresql+psycopg://app:secret@db/app",
        "log_level": "info",
        "units_module": "app.database.units",
        "log_file": "logs/dbengine.log",
        "migrations": {"table_name": "migrations"},
        "seeders": {"fail_fast": true}
    }

``DBENGINE_DATABASE_URL`` and ``DBENGINE_LOG_LEVEL`` override the file.
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .errors import ConfigurationError

LOG_FORMAT = '[%(asctime).19s] [%(name)s] [%(levelname)s] %(message)s'


@dataclass
class MigrationConfig:
    """
    Migration engine settings.

    Attributes:
        table_name: Ledger table name
    """
    table_name: str = 'migrations'


@dataclass
class SeederConfig:
    """
    Seeder engine settings.

    Attributes:
        fail_fast: Abort a full seeding run on the first failing seeder.
            When False, failures are logged and the run continues.
    """
    fail_fast: bool = True


@dataclass
class EngineConfig:
    database_url: str = 'sqlite:///dbengine.db'
    log_level: str = 'info'
    units_module: Optional[str] = None
    log_file: Optional[str] = None
    migrations: MigrationConfig = field(default_factory=MigrationConfig)
    seeders: SeederConfig = field(default_factory=SeederConfig)

    @property
    def logging_level(self) -> int:
        return parse_log_level(self.log_level)


def parse_log_level(name: str) -> int:
    """Parse a level name such as 'info' into its logging constant."""
    level = logging.getLevelName(str(name).upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level '{name}'")
    return level


def configure_logger(logger,
                     log_file=None,
                     log_format=None,
                     log_level=logging.INFO):
    """Configure a logger with a file or stream handler

    Handlers left by an earlier call on the same logger are closed and
    replaced. Missing parent directories of a log file path are created.

    Args:
        logger: Logger instance or logger name string
        log_file: File path string or file-like object (None for stderr)
        log_format: Format string for log messages (default LOG_FORMAT)
        log_level: Logging level (e.g., logging.INFO, logging.DEBUG)

    Returns:
        Configured logger instance
    """
    if isinstance(log_file, str):
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(
            log_file,
            mode='a',
            encoding='utf-8',
            errors='replace'
        )
    else:
        handler = logging.StreamHandler(log_file)  # Default to stderr if None

    handler.setFormatter(logging.Formatter(log_format or LOG_FORMAT))

    if isinstance(logger, str):
        logger = logging.getLogger(logger)

    for old_handler in list(logger.handlers):
        logger.removeHandler(old_handler)
        old_handler.close()

    logger.addHandler(handler)
    logger.setLevel(log_level)

    return logger


def _read_file(path: Path) -> dict:
    try:
        with open(path, 'r', encoding='utf-8') as fp:
            if path.suffix in ('.yaml', '.yml'):
                data = yaml.safe_load(fp)
            else:
                data = json.load(fp)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {path}") from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot parse config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {path} must contain a mapping, got {type(data).__name__}"
        )
    return data


def _section(data: dict, key: str) -> dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Config section '{key}' must be a mapping")
    return value


def _flag(section: dict, section_name: str, key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigurationError(
            f"Config value '{section_name}.{key}' must be true or false, got {value!r}"
        )
    return value


def load_config(path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """Load engine configuration from a JSON or YAML file.

    Args:
        path: Config file path, or None for defaults plus environment

    Returns:
        EngineConfig

    Raises:
        ConfigurationError: If the file is missing or unparseable, or a
            value (log level, boolean flag) is invalid
    """
    data: dict[str, Any] = _read_file(Path(path)) if path else {}

    migrations = _section(data, 'migrations')
    seeders = _section(data, 'seeders')

    config = EngineConfig(
        database_url=data.get('database_url', EngineConfig.database_url),
        log_level=data.get('log_level', EngineConfig.log_level),
        units_module=data.get('units_module'),
        log_file=data.get('log_file'),
        migrations=MigrationConfig(
            table_name=migrations.get('table_name', MigrationConfig.table_name)
        ),
        seeders=SeederConfig(
            fail_fast=_flag(seeders, 'seeders', 'fail_fast', SeederConfig.fail_fast)
        ),
    )

    # Environment wins over the file
    if os.environ.get('DBENGINE_DATABASE_URL'):
        config.database_url = os.environ['DBENGINE_DATABASE_URL']
    if os.environ.get('DBENGINE_LOG_LEVEL'):
        config.log_level = os.environ['DBENGINE_LOG_LEVEL']

    parse_log_level(config.log_level)
    return config
