class ActionError(Exception):
    pass


class ParseError(ActionError):
    pass


class GitHubError(ActionError):

    def __init__(self, status_code, message):
        super().__init__(f'GitHub API error {status_code}: {message}' if status_code else message)
        self.status_code = status_code
        self.message = message
