"""
Inspection of the project migrations state through django management commands.
"""
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor

from django.db import connections

from django_migration_actions.consts import (
    DEFAULT_WORKERS, MAKEMIGRATIONS_COMMAND, MIGRATION_LOCKS_COMMAND, SHOWMIGRATIONS_COMMAND, SQLMIGRATE_COMMAND,
)
from django_migration_actions.exceptions import ActionError
from django_migration_actions.parsers import parse_migration_plan
from django_migration_actions.runner import run_management_command

MigrationDetail = namedtuple('MigrationDetail', ['app_label', 'name', 'sql', 'locks'])


def check_missing_migrations():
    """
    return (is_missing : bool, makemigrations output : str)
    """
    result = run_management_command(MAKEMIGRATIONS_COMMAND, dry_run=True, check=True)
    return result.returncode != 0, result.stdout.strip()


def get_unapplied_migrations():
    """
    return (has_unapplied : bool, [Migration, ...]) in plan order
    """
    result = run_management_command(SHOWMIGRATIONS_COMMAND, format='plan')
    if result.returncode != 0:
        raise ActionError('Failed to run "showmigrations --plan"')

    unapplied = parse_migration_plan(result.stdout)
    return bool(unapplied), unapplied


def get_migration_output(migration, migration_locks_command=MIGRATION_LOCKS_COMMAND):
    """
    SQL the migration will run and, when lock command is available, the locks it will take.
    """
    result = run_management_command(SQLMIGRATE_COMMAND, migration.app_label, migration.name)
    if result.returncode != 0:
        raise ActionError('Failed to run sqlmigrate')
    sql = result.stdout

    result = run_management_command(migration_locks_command, migration.app_label, migration.name)
    locks = result.stdout if result.returncode == 0 else None

    return MigrationDetail(migration.app_label, migration.name, sql, locks)


def get_migrations_output(migrations, migration_locks_command=MIGRATION_LOCKS_COMMAND, workers=DEFAULT_WORKERS):
    if not migrations:
        return []

    def worker(migration):
        try:
            return get_migration_output(migration, migration_locks_command)
        finally:
            # database connections are per thread
            connections.close_all()

    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        return list(executor.map(worker, migrations))
