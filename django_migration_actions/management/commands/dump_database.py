import logging
import os

import git

from django_migration_actions.consts import DEFAULT_DATABASE, DUMP_COMMIT_MESSAGE, DUMP_PR_TITLE
from django_migration_actions.dump import apply_migrations, dump_schema
from django_migration_actions.exceptions import ActionError
from django_migration_actions.management.base import BaseActionCommand
from django_migration_actions.parsers import file_has_changed


class Command(BaseActionCommand):
    help = 'Apply migrations, dump database schema with pg_dump and, if the dump file has changed, ' \
           'commit it to a branch through GitHub API and open a pull request for it.'

    def add_arguments(self, parser):
        super().add_arguments(parser)

        parser.add_argument('-o', '--output-path', type=str, help='File to write database dump to.')
        parser.add_argument('-b', '--branch', type=str, help='Branch to commit the dump to and open pull request from.')
        parser.add_argument('--base', type=str, help='Pull request base branch. Default is repository default branch.')
        parser.add_argument('--database', type=str, default=DEFAULT_DATABASE, help='Database alias to dump.')
        parser.add_argument('--commit-message', type=str, help=f'Default `{DUMP_COMMIT_MESSAGE}`.')
        parser.add_argument('--pr-title', type=str, help=f'Default `{DUMP_PR_TITLE}`.')

    def _handle(self, *args, **options):
        client = self.get_github_client(options)
        output_path = self.get_option(options, 'output_path', 'output-path', required=True)
        branch = self.get_option(options, 'branch', 'branch', required=True)
        commit_message = self.get_option(options, 'commit_message', 'commit-message', default=DUMP_COMMIT_MESSAGE)
        pr_title = self.get_option(options, 'pr_title', 'pr-title', default=DUMP_PR_TITLE)

        applied = apply_migrations(options['database'])
        if applied:
            names = ', '.join(f'{m.app_label}.{m.name}' for m in applied)
            self.add_log(f'Applied {len(applied)} migrations: {names}')
        else:
            self.add_log('No migrations to apply.')

        dump_schema(output_path, options['database'])
        self.add_log(f'Database dumped to {output_path}.')

        repo = self.get_repo()
        path = self.get_repo_relative_path(repo, output_path)
        if not self.db_dump_has_changed(repo, path):
            self.add_log(f'{path} has not changed. Nothing to commit.', style_func=self.style.SUCCESS)
            return

        base = self.get_option(options, 'base', 'base') or client.get_default_branch()
        self.commit_file(client, path, output_path, branch, base, commit_message)
        self.make_pull_request(client, branch, base, pr_title)

    @staticmethod
    def get_repo_relative_path(repo, output_path):
        path = os.path.relpath(os.path.realpath(output_path), os.path.realpath(repo.working_tree_dir))
        if path == os.pardir or path.startswith(os.pardir + os.sep):
            raise ActionError(f'{output_path} is outside of git repository {repo.working_tree_dir}.')
        return path.replace(os.sep, '/')

    def db_dump_has_changed(self, repo, path):
        """
        dump is changed when git lists it as modified or untracked
        """
        try:
            output = repo.git.ls_files('-m', '-o', path)
        except git.GitCommandError as err:
            self.add_log(f'An error occurred while working with git repo!', style_func=self.style.ERROR,
                         log_level=logging.ERROR)
            raise ActionError(err) from err

        return file_has_changed(output, path)

    def ensure_branch(self, client, branch, base):
        if client.get_branch_sha(branch) is not None:
            return

        base_sha = client.get_branch_sha(base)
        if base_sha is None:
            raise ActionError(f'Can not find base branch `{base}`.')

        client.create_branch(branch, base_sha)
        self.add_log(f'Branch `{branch}` created from `{base}`.')

    def commit_file(self, client, path, output_path, branch, base, message):
        self.ensure_branch(client, branch, base)

        # blob sha of the current file on the branch, if it exists, makes the request an update
        sha = client.get_file_sha(path, ref=branch)

        with open(output_path, 'rb') as dump_file:
            content = dump_file.read()

        client.create_or_update_file(path, message, content, branch=branch, sha=sha)
        self.add_log(f'{"Updated" if sha else "Created"} {path} on branch `{branch}`.')

    def make_pull_request(self, client, branch, base, title):
        pulls = client.list_pulls(branch, base=base)
        if pulls:
            self.add_log(f'Pull request already exists: {pulls[0].get("html_url")}')
            return

        pull = client.create_pull(title, branch, base)
        self.add_log(f'Pull request created: {pull.get("html_url")}', style_func=self.style.SUCCESS)
