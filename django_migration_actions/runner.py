"""
Helpers to run external programs and django management commands with captured output.
Both return CommandResult, so callers decide what a non-zero return code means.
"""
import io
import logging
import subprocess
from collections import namedtuple

from django.core.management import call_command
from django.core.management.base import CommandError

from django_migration_actions.exceptions import ActionError

logger = logging.getLogger(__name__)

CommandResult = namedtuple('CommandResult', ['returncode', 'stdout'])


def run_process(args, cwd=None, env=None):
    logger.debug('Running process: %s', ' '.join(args))
    try:
        completed = subprocess.run(args, cwd=cwd, env=env, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                                   universal_newlines=True)
    except OSError as err:
        raise ActionError(f'Can not run `{args[0]}`: {err}') from err

    if completed.returncode != 0 and completed.stderr:
        logger.debug('`%s` exited with %s: %s', args[0], completed.returncode, completed.stderr.strip())

    return CommandResult(completed.returncode, completed.stdout)


def run_management_command(name, *args, **options):
    """
    Run management command in-process.
    SystemExit(code) and CommandError are turned into a non-zero return code like a `manage.py` run would do.
    """
    out = io.StringIO()
    logger.debug('Running management command: %s %s', name, ' '.join(str(arg) for arg in args))
    try:
        call_command(name, *args, stdout=out, stderr=io.StringIO(), **options)
        returncode = 0
    except SystemExit as err:
        returncode = _exit_code(err.code)
    except CommandError as err:
        out.write(f'{err}\n')
        returncode = getattr(err, 'returncode', 1) or 1

    return CommandResult(returncode, out.getvalue())


def _exit_code(code):
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    return 1
