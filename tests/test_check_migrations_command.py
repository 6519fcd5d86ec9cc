import io
import json
import os
from unittest import mock

import responses
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import OperationalError
from django.test import SimpleTestCase

from django_migration_actions.exceptions import ActionError
from django_migration_actions.migrations import MigrationDetail
from django_migration_actions.parsers import Migration

COMMAND = 'django_migration_actions.management.commands.check_migrations'
REPO_URL = 'https://api.github.com/repos/octo/app'
OPTIONS = {
    'github_token': 'abc123',
    'repository': 'octo/app',
    'api_url': 'https://api.github.com',
    'sha': 'deadbeef',
}


class CheckMigrationsCommandTestCase(SimpleTestCase):

    def setUp(self):
        self.out = io.StringIO()
        self.patchers = {
            'missing': mock.patch(f'{COMMAND}.check_missing_migrations', return_value=(False, 'No changes detected')),
            'unapplied': mock.patch(f'{COMMAND}.get_unapplied_migrations', return_value=(False, [])),
            'output': mock.patch(f'{COMMAND}.get_migrations_output', return_value=[]),
        }
        self.mocks = {name: patcher.start() for name, patcher in self.patchers.items()}
        self.addCleanup(mock.patch.stopall)

    def add_check_run_responses(self):
        responses.add(responses.POST, f'{REPO_URL}/check-runs', json={'id': 7}, status=201)
        responses.add(responses.PATCH, f'{REPO_URL}/check-runs/7', json={'id': 7})

    def update_payload(self):
        return json.loads(responses.calls[-1].request.body)

    @responses.activate
    def test_nothing_to_report(self):
        self.add_check_run_responses()

        call_command('check_migrations', stdout=self.out, **OPTIONS)

        self.assertEqual(json.loads(responses.calls[0].request.body)['head_sha'], 'deadbeef')
        payload = self.update_payload()
        self.assertEqual(payload['conclusion'], 'success')
        self.assertEqual(payload['output'], {'title': 'Migrations check', 'summary': '0 new migrations', 'text': ''})
        self.assertIn('Migrations check: success', self.out.getvalue())

    @responses.activate
    def test_new_migrations(self):
        self.add_check_run_responses()
        migration = Migration('blog', '0002_post_slug')
        self.mocks['unapplied'].return_value = (True, [migration])
        self.mocks['output'].return_value = [MigrationDetail('blog', '0002_post_slug', 'ALTER TABLE;', 'locks')]

        call_command('check_migrations', stdout=self.out, migrations_lock_command='pglocks', workers=2, **OPTIONS)

        self.mocks['output'].assert_called_once_with([migration], 'pglocks', 2)
        payload = self.update_payload()
        self.assertEqual(payload['conclusion'], 'success')
        self.assertEqual(payload['output']['summary'], '1 new migrations')
        self.assertIn('#### blog.0002_post_slug', payload['output']['text'])
        self.assertIn('::group::Migrations SQL', self.out.getvalue())

    @responses.activate
    def test_missing_migrations_fail_check(self):
        self.add_check_run_responses()
        self.mocks['missing'].return_value = (True, "Migrations for 'blog':")
        self.mocks['unapplied'].return_value = (True, [Migration('blog', '0002_post_slug')])
        self.mocks['output'].return_value = [MigrationDetail('blog', '0002_post_slug', 'SQL', None)]

        call_command('check_migrations', stdout=self.out, **OPTIONS)

        payload = self.update_payload()
        self.assertEqual(payload['conclusion'], 'failure')
        self.assertEqual(payload['output']['summary'], 'Missing migrations and 1 new migrations')
        self.assertTrue(payload['output']['text'].startswith("## Missing migrations\n```\nMigrations for 'blog':"))

    @responses.activate
    def test_error_marks_check_run_failed(self):
        self.add_check_run_responses()
        self.mocks['unapplied'].side_effect = ActionError('Failed to run "showmigrations --plan"')

        with self.assertRaises(CommandError):
            call_command('check_migrations', stdout=self.out, **OPTIONS)

        payload = self.update_payload()
        self.assertEqual(payload['conclusion'], 'failure')
        self.assertEqual(payload['output'], {'title': 'Migrations check', 'summary': 'Failed to check migrations.'})
        self.assertIn('::error::Failed to run "showmigrations --plan"', self.out.getvalue())

    @responses.activate
    def test_unexpected_error_is_logged_and_marks_check_run_failed(self):
        self.add_check_run_responses()
        self.mocks['output'].side_effect = OperationalError('no such table: django_migrations')
        self.mocks['unapplied'].return_value = (True, [Migration('blog', '0002_post_slug')])

        with self.assertRaisesMessage(CommandError, 'no such table: django_migrations'):
            call_command('check_migrations', stdout=self.out, **OPTIONS)

        self.assertEqual(self.update_payload()['conclusion'], 'failure')
        self.assertIn('::error::no such table: django_migrations', self.out.getvalue())

    @responses.activate
    def test_original_error_is_logged_when_failure_update_fails(self):
        responses.add(responses.POST, f'{REPO_URL}/check-runs', json={'id': 7}, status=201)
        responses.add(responses.PATCH, f'{REPO_URL}/check-runs/7', json={'message': 'Server Error'}, status=500)
        self.mocks['unapplied'].side_effect = ActionError('Failed to run "showmigrations --plan"')

        with self.assertRaises(CommandError):
            call_command('check_migrations', stdout=self.out, **OPTIONS)

        output = self.out.getvalue()
        self.assertIn('Failed to check migrations: Failed to run "showmigrations --plan"', output)
        self.assertIn('::error::GitHub API error 500', output)

    @responses.activate
    def test_check_run_without_id(self):
        responses.add(responses.POST, f'{REPO_URL}/check-runs', json={'message': 'Accepted'}, status=201)

        with self.assertRaisesMessage(CommandError, 'Check run id is missing in GitHub response.'):
            call_command('check_migrations', stdout=self.out, **OPTIONS)

        self.assertEqual(len(responses.calls), 1)
        self.mocks['missing'].assert_not_called()

    @responses.activate
    def test_check_run_creation_failure(self):
        responses.add(responses.POST, f'{REPO_URL}/check-runs', json={'message': 'Bad credentials'}, status=401)

        with self.assertRaises(CommandError):
            call_command('check_migrations', stdout=self.out, **OPTIONS)

        self.assertEqual(len(responses.calls), 1)
        self.mocks['missing'].assert_not_called()

    @responses.activate
    def test_custom_check_name_from_action_input(self):
        self.add_check_run_responses()

        with mock.patch.dict(os.environ, {'INPUT_CHECK-NAME': 'Schema'}):
            call_command('check_migrations', stdout=self.out, **OPTIONS)

        self.assertEqual(json.loads(responses.calls[0].request.body)['name'], 'Schema')
        self.assertEqual(self.update_payload()['output']['title'], 'Schema')

    def test_missing_token(self):
        env = {'GITHUB_TOKEN': '', 'INPUT_GITHUB-TOKEN': ''}
        with mock.patch.dict(os.environ, env):
            with self.assertRaises(CommandError):
                call_command('check_migrations', stdout=self.out, repository='octo/app', sha='deadbeef')

        self.assertIn('Missing required option --github-token', self.out.getvalue())

    def test_dry_run(self):
        self.mocks['unapplied'].return_value = (True, [Migration('blog', '0002_post_slug')])
        self.mocks['output'].return_value = [MigrationDetail('blog', '0002_post_slug', 'SQL', None)]

        call_command('check_migrations', dry_run=True, stdout=self.out)

        self.assertIn('Migrations check: success. 1 new migrations', self.out.getvalue())
        self.assertIn('#### blog.0002_post_slug', self.out.getvalue())

    def test_dry_run_missing_migrations(self):
        self.mocks['missing'].return_value = (True, "Migrations for 'blog':")

        with self.assertRaisesMessage(CommandError, 'Missing migrations'):
            call_command('check_migrations', dry_run=True, stdout=self.out)
