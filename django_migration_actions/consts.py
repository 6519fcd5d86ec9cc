DEFAULT_REPO_PATH = '.'
DEFAULT_DATABASE = 'default'

GITHUB_API_URL = 'https://api.github.com'
GITHUB_TIMEOUT = 30
GITHUB_USER_AGENT = 'django-migration-actions'

CHECK_RUN_NAME = 'Migrations check'
CHECK_RUN_FAILED_SUMMARY = 'Failed to check migrations.'
MIGRATION_LOCKS_COMMAND = 'migrationlocks'
DEFAULT_WORKERS = 4

MIGRATE_COMMAND = 'migrate'
MAKEMIGRATIONS_COMMAND = 'makemigrations'
SHOWMIGRATIONS_COMMAND = 'showmigrations'
SQLMIGRATE_COMMAND = 'sqlmigrate'

PG_DUMP_EXECUTABLE = 'pg_dump'
POSTGRESQL_ENGINES = (
    'django.db.backends.postgresql',
    'django.db.backends.postgresql_psycopg2',
    'django.contrib.gis.db.backends.postgis',
)

DUMP_COMMIT_MESSAGE = 'Update database template'
DUMP_PR_TITLE = 'Update database template'
