#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Operator commands for migrations and seeders.

Usage:
    dbengine --units app.database.units migrate
    python -m dbengine --units app.database.units migrate
    python -m dbengine migrate:rollback --count=2
    python -m dbengine migrate:rollback --count=all
    python -m dbengine migrate:status
    python -m dbengine db:seed
    python -m dbengine db:seed --name=UserSeeder
    python -m dbengine db:seed --name=list
"""
import argparse
import logging
import sys
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .config import EngineConfig, configure_logger, load_config
from .database import Database
from .errors import ConfigurationError, EngineError
from .migrations import MigrationManager
from .registry import Registry, load_units
from .seeders import SeederManager

logger = logging.getLogger(__name__)

LIST_SEEDERS = 'list'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dbengine',
        description='Run schema migrations and data seeders'
    )
    parser.add_argument('--config', help='Path to JSON or YAML config file')
    parser.add_argument('--database-url', help='Override the configured database URL')
    parser.add_argument('--units', help='Dotted path of the module registering units')

    commands = parser.add_subparsers(dest='command', required=True)
    commands.add_parser('migrate', help='Apply all pending migrations')

    rollback = commands.add_parser('migrate:rollback', help='Roll back applied migrations')
    rollback.add_argument('--count', default='1',
                          help="Number of migrations to roll back, or 'all' (default: 1)")

    commands.add_parser('migrate:status', help='Show applied and pending migrations')

    seed = commands.add_parser('db:seed', help='Run seeders')
    seed.add_argument('--name', default='',
                      help="Seeder to run with its prerequisites, 'list' to show "
                           "the run order, or empty for all seeders")
    return parser


def _load_registries(config: EngineConfig) -> tuple:
    if not config.units_module:
        raise ConfigurationError(
            'No units module configured (use --units or units_module in the config file)'
        )
    return load_units(config.units_module)


def _migrate(manager: MigrationManager) -> None:
    results = manager.run_migrations()
    if not results:
        print('✓ Nothing to migrate')
        return
    for result in results:
        print(f'✓ Migrated {result.version} ({result.execution_time_ms}ms)')


def _rollback(manager: MigrationManager, count: str) -> None:
    results = manager.rollback_migrations(count)
    if not results:
        print('✓ Nothing to roll back')
        return
    for result in results:
        print(f'✓ Rolled back {result.version} ({result.execution_time_ms}ms)')


def _status(manager: MigrationManager) -> None:
    status = manager.get_migration_status()
    for entry in status.entries:
        if entry.applied_at:
            print(f'{entry.state:<8} {entry.version}  {entry.description}  ({entry.applied_at})')
        else:
            print(f'{entry.state:<8} {entry.version}  {entry.description}')
    for record in status.orphaned:
        print(f'ORPHANED {record.version}  {record.description}  (not registered)')
    print(f'Applied: {status.applied}  Pending: {status.pending}  Total: {status.total}')


def _seed(manager: SeederManager, name: str) -> int:
    if name == LIST_SEEDERS:
        listing = manager.list_seeders()
        if not listing.resolved:
            print(f'⚠ Dependencies unresolved, registration order shown: {listing.error}')
        for entry in listing.entries:
            deps = f" (depends on: {', '.join(entry.dependencies)})" if entry.dependencies else ''
            print(f'{entry.position}. {entry.name}{deps}')
        return 0

    report = manager.run_seeders(name)
    for seeder_name in report.executed:
        print(f'✓ Seeded {seeder_name}')
    for seeder_name in report.failed:
        print(f'✗ Seeder {seeder_name} failed', file=sys.stderr)
    return 0 if report.success else 1


def run(args: argparse.Namespace, config: EngineConfig,
        migrations: Registry, seeders: Registry) -> int:
    """Execute one parsed command against freshly built managers."""
    database = Database(config.database_url)
    try:
        if args.command.startswith('migrate'):
            manager = MigrationManager(database, migrations.all(), config.migrations)
            if args.command == 'migrate':
                _migrate(manager)
            elif args.command == 'migrate:rollback':
                _rollback(manager, args.count)
            else:
                _status(manager)
            return 0

        return _seed(SeederManager(database, seeders.all(), config.seeders), args.name)
    finally:
        database.dispose()


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point; returns the process exit status."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        if args.database_url:
            config.database_url = args.database_url
        if args.units:
            config.units_module = args.units

        configure_logger('dbengine', log_file=config.log_file, log_level=config.logging_level)

        migrations, seeders = _load_registries(config)
        return run(args, config, migrations, seeders)
    except EngineError as e:
        print(f'✗ {e}', file=sys.stderr)
        return 1
    except SQLAlchemyError as e:
        logger.error('Database error: %s', e)
        print(f'✗ Database error: {e}', file=sys.stderr)
        return 1
