"""
GitHub Actions runner glue: reading action inputs from the environment and printing workflow commands.
"""
import os


def get_input(name, default=None, environ=None):
    """
    The runner exposes an input `output-path` as env variable `INPUT_OUTPUT-PATH`.
    """
    environ = os.environ if environ is None else environ
    value = environ.get(f'INPUT_{name.replace(" ", "_").upper()}', '').strip()
    return value or default


def get_env(name, default=None, environ=None):
    environ = os.environ if environ is None else environ
    return environ.get(name) or default


def escape_data(value):
    return str(value).replace('%', '%25').replace('\r', '%0D').replace('\n', '%0A')


def error_command(message):
    return f'::error::{escape_data(message)}'


def group_command(title):
    return f'::group::{escape_data(title)}'


def endgroup_command():
    return '::endgroup::'
