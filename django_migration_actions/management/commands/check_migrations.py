import logging

from django.core.management.base import CommandError

from django_migration_actions import workflow
from django_migration_actions.consts import (
    CHECK_RUN_FAILED_SUMMARY, CHECK_RUN_NAME, DEFAULT_WORKERS, MIGRATION_LOCKS_COMMAND,
)
from django_migration_actions.management.base import BaseActionCommand
from django_migration_actions.migrations import (
    check_missing_migrations, get_migrations_output, get_unapplied_migrations,
)
from django_migration_actions.report import FAILURE, build_check_run_result


class Command(BaseActionCommand):
    help = 'Check for missing and unapplied migrations and report the result as a GitHub check run. ' \
           'Missing migrations fail the check. Unapplied migrations are listed with their SQL and, ' \
           'if lock command is available, the locks they take.'

    def add_arguments(self, parser):
        super().add_arguments(parser)

        parser.add_argument('--migrations-lock-command', type=str,
                            help=f'Management command to describe migration locks. Default `{MIGRATION_LOCKS_COMMAND}`.')
        parser.add_argument('--check-name', type=str, help=f'Check run name. Default `{CHECK_RUN_NAME}`.')
        parser.add_argument('--sha', type=str, help='Commit sha for check run. Defaults to GITHUB_SHA or HEAD.')
        parser.add_argument('--workers', type=int, default=DEFAULT_WORKERS,
                            help='Number of migrations inspected concurrently.')
        parser.add_argument('--dry-run', action='store_true',
                            help='Only print check result without any calls to GitHub.')

    def _handle(self, *args, **options):
        lock_command = self.get_option(options, 'migrations_lock_command', 'migrations-lock-command',
                                       default=MIGRATION_LOCKS_COMMAND)
        check_name = self.get_option(options, 'check_name', 'check-name', default=CHECK_RUN_NAME)

        if options['dry_run']:
            result = self.check_migrations(lock_command, options['workers'])
            self.add_log(f'{check_name}: {result.conclusion}. {result.summary}')
            if result.text:
                self.add_log(result.text)
            if result.conclusion == FAILURE:
                raise CommandError(result.summary)
            return

        client = self.get_github_client(options)
        sha = self.get_option(options, 'sha', env_name='GITHUB_SHA') or self.get_current_commit()

        # check run should be created before anything else, so the status is visible while we work
        check_run_id = client.create_check_run(check_name, sha)['id']
        self.add_log(f'Check run {check_run_id} created for {sha}.', log_level=logging.DEBUG)

        try:
            result = self.check_migrations(lock_command, options['workers'])
            client.update_check_run(check_run_id, result.conclusion, {
                'title': check_name,
                'summary': result.summary,
                'text': result.text,
            })
        except Exception as err:
            self.add_log(f'Failed to check migrations: {err}', style_func=self.style.ERROR, log_level=logging.ERROR,
                         exc_info=True)
            client.update_check_run(check_run_id, FAILURE, {
                'title': check_name,
                'summary': CHECK_RUN_FAILED_SUMMARY,
            })
            raise

        style_func = self.style.SUCCESS if result.conclusion != FAILURE else self.style.ERROR
        self.add_log(f'{check_name}: {result.conclusion}. {result.summary}', style_func=style_func)

    def check_migrations(self, lock_command, workers):
        is_missing, makemigrations_output = check_missing_migrations()
        if is_missing:
            self.add_log('Found missing migrations.', style_func=self.style.WARNING, log_level=logging.WARNING)

        has_unapplied, unapplied = get_unapplied_migrations()
        if has_unapplied:
            names = ', '.join(f'{m.app_label}.{m.name}' for m in unapplied)
            self.add_log(f'Found {len(unapplied)} new migrations: {names}')
            self.add_log(workflow.group_command('Migrations SQL'), log_level=logging.DEBUG)

        details = get_migrations_output(unapplied, lock_command, workers)
        for detail in details:
            self.add_log(f'-- {detail.app_label}.{detail.name}\n{detail.sql}', log_level=logging.DEBUG)

        if has_unapplied:
            self.add_log(workflow.endgroup_command(), log_level=logging.DEBUG)

        return build_check_run_result(is_missing, makemigrations_output, details)
