"""
Applying migrations and dumping the database schema with pg_dump.
"""
import os

from django.conf import settings

from django_migration_actions.consts import DEFAULT_DATABASE, MIGRATE_COMMAND, PG_DUMP_EXECUTABLE, POSTGRESQL_ENGINES
from django_migration_actions.exceptions import ActionError
from django_migration_actions.parsers import parse_applied_migrations
from django_migration_actions.runner import run_management_command, run_process

# django OPTIONS keys passed to libpq through environment
PG_ENV_OPTIONS = {
    'sslmode': 'PGSSLMODE',
    'sslrootcert': 'PGSSLROOTCERT',
    'sslcert': 'PGSSLCERT',
    'sslkey': 'PGSSLKEY',
    'service': 'PGSERVICE',
    'passfile': 'PGPASSFILE',
}


def apply_migrations(database=DEFAULT_DATABASE):
    """
    return list of Migration applied by this run
    """
    result = run_management_command(MIGRATE_COMMAND, interactive=False, database=database)
    if result.returncode != 0:
        raise ActionError(f'Failed to run "migrate": {result.stdout.strip()}')
    return parse_applied_migrations(result.stdout)


def get_database_settings(database=DEFAULT_DATABASE):
    try:
        db_settings = settings.DATABASES[database]
    except KeyError:
        raise ActionError(f'Database `{database}` is not configured.')

    if db_settings.get('ENGINE') not in POSTGRESQL_ENGINES:
        raise ActionError(f'pg_dump requires PostgreSQL database, `{database}` uses {db_settings.get("ENGINE")}.')

    return db_settings


def pg_dump_command(db_settings, output_path):
    """
    return (args, extra environment) for schema only dump of the database
    """
    args = [PG_DUMP_EXECUTABLE, '--schema-only', '--no-owner', '--no-privileges', '--file', output_path]
    env = {}

    if db_settings.get('HOST'):
        args += ['--host', str(db_settings['HOST'])]
    if db_settings.get('PORT'):
        args += ['--port', str(db_settings['PORT'])]
    if db_settings.get('USER'):
        args += ['--username', db_settings['USER']]
    if db_settings.get('PASSWORD'):
        env['PGPASSWORD'] = db_settings['PASSWORD']

    for option, env_name in PG_ENV_OPTIONS.items():
        value = db_settings.get('OPTIONS', {}).get(option)
        if value:
            env[env_name] = str(value)

    if db_settings.get('NAME'):
        args += ['--dbname', db_settings['NAME']]

    return args, env


def dump_schema(output_path, database=DEFAULT_DATABASE):
    args, extra_env = pg_dump_command(get_database_settings(database), output_path)

    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    env = os.environ.copy()
    env.update(extra_env)
    result = run_process(args, env=env)
    if result.returncode != 0:
        raise ActionError(f'Failed to run pg_dump (exit code {result.returncode}).')
