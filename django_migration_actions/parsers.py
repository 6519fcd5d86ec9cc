"""
Parsers for textual output of `showmigrations --plan`, `migrate` and `git ls-files`.
"""
import re
from collections import namedtuple

from django_migration_actions.exceptions import ParseError

Migration = namedtuple('Migration', ['app_label', 'name'])

SHOWMIGRATIONS_PLAN_RE = re.compile(r'^\[(?P<applied>[X ])\]\s+(?P<app_label>\w+)\.(?P<name>\w+)$')
MIGRATE_APPLYING_RE = re.compile(r'^\s*Applying (?P<app_label>\w+)\.(?P<name>\w+)\.\.\.')


def parse_migration_plan(output):
    """
    return unapplied migrations in plan order:
    [Migration(<app_label> : str, <name> : str), ...]

    every line of the output is expected to match, otherwise ParseError is raised
    """
    output = output.strip()
    if not output:
        return []

    result = []
    for line in output.split('\n'):
        match = SHOWMIGRATIONS_PLAN_RE.match(line.rstrip('\r'))
        if not match:
            raise ParseError(f'Line {line} did not match regex')

        if match.group('applied') == ' ':
            result.append(Migration(match.group('app_label'), match.group('name')))

    return result


def parse_applied_migrations(output):
    result = []
    for line in output.splitlines():
        match = MIGRATE_APPLYING_RE.match(line)
        if match:
            result.append(Migration(match.group('app_label'), match.group('name')))
    return result


def file_has_changed(ls_files_output, path):
    return path in ls_files_output.splitlines()
