"""
Minimal client for the GitHub REST endpoints used by the actions:
check runs, repository contents, git refs and pull requests.
"""
import base64
import logging
from datetime import datetime, timezone

import requests

from django_migration_actions.consts import GITHUB_API_URL, GITHUB_TIMEOUT, GITHUB_USER_AGENT
from django_migration_actions.exceptions import GitHubError

logger = logging.getLogger(__name__)


def now_iso():
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace('+00:00', 'Z')


class GitHubClient:

    def __init__(self, token, repository, api_url=GITHUB_API_URL, timeout=GITHUB_TIMEOUT, session=None):
        if not token:
            raise GitHubError(None, 'GitHub token is required.')
        if not repository or repository.count('/') != 1:
            raise GitHubError(None, f'Repository should be in format `owner/name`, got `{repository}`.')

        self.owner, self.repo = repository.split('/')
        self.api_url = (api_url or GITHUB_API_URL).rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/vnd.github+json',
            'Authorization': f'token {token}',
            'User-Agent': GITHUB_USER_AGENT,
        })

    @property
    def repo_url(self):
        return f'{self.api_url}/repos/{self.owner}/{self.repo}'

    def _request(self, method, path, allow_404=False, **kwargs):
        url = f'{self.repo_url}{path}'
        logger.debug('GitHub request: %s %s', method, url)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as err:
            raise GitHubError(None, f'GitHub request failed: {err}') from err

        if allow_404 and response.status_code == 404:
            return None

        if not 200 <= response.status_code < 300:
            message = (response.text or '').strip() or response.reason or 'unknown'
            raise GitHubError(response.status_code, message)

        try:
            return response.json()
        except ValueError as err:
            raise GitHubError(response.status_code, 'Invalid JSON response from GitHub') from err

    # check runs

    def create_check_run(self, name, head_sha, status='in_progress'):
        data = self._request('POST', '/check-runs', json={'name': name, 'head_sha': head_sha, 'status': status})
        if not isinstance(data, dict) or data.get('id') is None:
            raise GitHubError(None, 'Check run id is missing in GitHub response.')
        return data

    def update_check_run(self, check_run_id, conclusion, output, completed_at=None):
        output = {key: value for key, value in output.items() if value is not None}
        payload = {
            'status': 'completed',
            'completed_at': completed_at or now_iso(),
            'conclusion': conclusion,
            'output': output,
        }
        return self._request('PATCH', f'/check-runs/{check_run_id}', json=payload)

    # contents

    def get_file_sha(self, path, ref=None):
        params = {'ref': ref} if ref else None
        data = self._request('GET', f'/contents/{path}', allow_404=True, params=params)
        if data is None or isinstance(data, list):
            return None
        return data.get('sha')

    def create_or_update_file(self, path, message, content, branch=None, sha=None):
        payload = {
            'message': message,
            'content': base64.b64encode(content).decode('ascii'),
        }
        if branch:
            payload['branch'] = branch
        if sha is not None:
            payload['sha'] = sha
        return self._request('PUT', f'/contents/{path}', json=payload)

    # refs

    def get_default_branch(self):
        data = self._request('GET', '')
        if not isinstance(data, dict) or not data.get('default_branch'):
            raise GitHubError(None, 'Default branch is missing in GitHub response.')
        return data['default_branch']

    def get_branch_sha(self, branch):
        data = self._request('GET', f'/git/ref/heads/{branch}', allow_404=True)
        if data is None:
            return None
        return data['object']['sha']

    def create_branch(self, branch, sha):
        return self._request('POST', '/git/refs', json={'ref': f'refs/heads/{branch}', 'sha': sha})

    # pull requests

    def list_pulls(self, head, state='open', base=None):
        params = {'state': state, 'head': f'{self.owner}:{head}'}
        if base:
            params['base'] = base
        return self._request('GET', '/pulls', params=params)

    def create_pull(self, title, head, base, body=None):
        payload = {'title': title, 'head': head, 'base': base}
        if body:
            payload['body'] = body
        return self._request('POST', '/pulls', json=payload)
