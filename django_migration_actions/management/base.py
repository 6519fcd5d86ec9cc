import io
import logging
import traceback
import warnings

import git
from django.core.management.base import BaseCommand, CommandError
from django.utils.encoding import force_str

from django_migration_actions import workflow
from django_migration_actions.consts import DEFAULT_REPO_PATH, GITHUB_API_URL
from django_migration_actions.exceptions import ActionError, GitHubError
from django_migration_actions.github import GitHubClient


class BaseActionCommand(BaseCommand):

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._repo_path = DEFAULT_REPO_PATH
        self._out = io.StringIO()
        self._logger = None
        self._result_log_level = logging.DEBUG

    def add_arguments(self, parser):
        parser.add_argument('-p', '--path', type=str, default=DEFAULT_REPO_PATH, help='Git repository path.')
        parser.add_argument('-l', '--logger', type=str, help='Logger name for logging.')
        parser.add_argument('--log-level', type=str, help='Log level for logging. INFO, DEBUG, etc.')
        parser.add_argument('--github-token', type=str,
                            help='GitHub token. Defaults to `github-token` action input or GITHUB_TOKEN.')
        parser.add_argument('--repository', type=str,
                            help='Repository in format `owner/name`. Defaults to GITHUB_REPOSITORY.')
        parser.add_argument('--api-url', type=str, help='GitHub API url. Defaults to GITHUB_API_URL.')

    def configure_repo_path(self, options):
        self._repo_path = options.get('path') or DEFAULT_REPO_PATH

    def configure_logger(self, options):
        if options.get('logger'):
            logger = logging.getLogger(options['logger'])

            log_level = logging.getLevelName(options['log_level']) if options.get('log_level') else None
            if isinstance(log_level, int):
                logger.setLevel(log_level)

            self._logger = logger

    def add_log(self, message, style_func=None, ending='\n', log_level=logging.INFO, exc_info=False):
        if isinstance(message, str) and not message.endswith(ending):
            message += ending

        if style_func is None:
            style_func = lambda x: x

        if log_level > self._result_log_level:
            self._result_log_level = log_level

        if exc_info:
            message += traceback.format_exc()
            if not message.endswith(ending):
                message += ending

        self._out.write(force_str(style_func(message)))

    def write_log(self):
        message = self._out.getvalue()

        self.stdout.write(message, ending='')

        if self._logger:
            self._logger.log(self._result_log_level, message)

    def close_log(self):
        self._out.close()

    def handle(self, *args, **options):
        try:
            self.configure_repo_path(options)
            self.configure_logger(options)
            # same as `python -W ignore manage.py ...` for the commands we run in-process
            with warnings.catch_warnings():
                warnings.simplefilter('ignore')
                self._handle(*args, **options)

        except ActionError as err:
            self.fail(err)

        except CommandError:
            raise

        except Exception as err:
            self.fail(err)

        finally:
            self.write_log()
            self.close_log()

    def _handle(self, *args, **options):
        raise NotImplementedError('subclasses of BaseActionCommand must provide a _handle() method')

    def fail(self, err):
        self.add_log(f'Something went wrong: {err}', style_func=self.style.ERROR, log_level=logging.ERROR,
                     exc_info=True)
        self.add_log(workflow.error_command(err), log_level=logging.ERROR)
        raise CommandError(err)

    def get_option(self, options, key, input_name=None, env_name=None, default=None, required=False):
        """
        resolve option value in order: command line, action input, environment variable, default
        """
        value = options.get(key)
        if not value and input_name:
            value = workflow.get_input(input_name)
        if not value and env_name:
            value = workflow.get_env(env_name)
        if not value:
            value = default

        if required and not value:
            source = f'--{key.replace("_", "-")}'
            if input_name:
                source += f' or `{input_name}` input'
            raise ActionError(f'Missing required option {source}.')

        return value

    def get_github_client(self, options):
        token = self.get_option(options, 'github_token', 'github-token', 'GITHUB_TOKEN', required=True)
        repository = self.get_option(options, 'repository', env_name='GITHUB_REPOSITORY', required=True)
        api_url = self.get_option(options, 'api_url', env_name='GITHUB_API_URL', default=GITHUB_API_URL)
        try:
            return GitHubClient(token, repository, api_url=api_url)
        except GitHubError as err:
            raise ActionError(err.message) from err

    def get_repo(self):
        try:
            return git.Repo(self._repo_path, search_parent_directories=True)
        except (git.InvalidGitRepositoryError, git.NoSuchPathError) as err:
            self.add_log(f'An error occurred while working with git repo!', style_func=self.style.ERROR,
                         log_level=logging.ERROR)
            raise ActionError(f'Not a git repository: {self._repo_path}') from err

    def get_current_commit(self):
        try:
            return self.get_repo().head.commit.hexsha
        except ValueError as err:
            self.add_log(f'An error occurred while working with git repo!', style_func=self.style.ERROR,
                         log_level=logging.ERROR, exc_info=True)
            raise ActionError(err) from err
