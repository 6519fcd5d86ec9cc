"""
Markdown rendering of the check run output.
"""
from collections import namedtuple

CheckRunResult = namedtuple('CheckRunResult', ['conclusion', 'summary', 'text'])

SUCCESS = 'success'
FAILURE = 'failure'


def render_details(title, content):
    return f'<details><summary>{title}</summary>\n\n{content}\n\n</details>'


def render_migration(detail):
    return '\n'.join([
        f'#### {detail.app_label}.{detail.name}',
        render_details('SQL', '\n'.join(['```sql', detail.sql, '```'])),
        render_details('Locks', '\n'.join(['```', detail.locks, '```'])) if detail.locks else '',
    ])


def render_details_markdown(is_missing_migrations, makemigrations_output, has_unapplied_migrations,
                            unapplied_migrations):
    lines = []
    if is_missing_migrations:
        lines += ['## Missing migrations', '```', makemigrations_output, '```']
    if has_unapplied_migrations:
        lines += ['## New migrations', '', '\n'.join(render_migration(detail) for detail in unapplied_migrations)]
    return '\n'.join(lines)


def render_summary(is_missing_migrations, unapplied_count):
    if is_missing_migrations and unapplied_count:
        return f'Missing migrations and {unapplied_count} new migrations'
    if is_missing_migrations:
        return 'Missing migrations'
    return f'{unapplied_count} new migrations'


def build_check_run_result(is_missing_migrations, makemigrations_output, unapplied_migrations):
    """
    unapplied migrations alone do not fail the check, only missing ones do
    """
    return CheckRunResult(
        conclusion=FAILURE if is_missing_migrations else SUCCESS,
        summary=render_summary(is_missing_migrations, len(unapplied_migrations)),
        text=render_details_markdown(is_missing_migrations, makemigrations_output, bool(unapplied_migrations),
                                     unapplied_migrations),
    )
