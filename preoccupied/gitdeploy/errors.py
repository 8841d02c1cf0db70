"""
Exception types for the gitdeploy application.

:author: Christopher O'Brien <obriencj@preoccupied.net>
:license: GNU General Public License v3
"""

from subprocess import CalledProcessError
from typing import Optional, Sequence


class GitDeployError(Exception):
    """
    Base class for all gitdeploy failures.
    """


class ConfigurationError(GitDeployError):
    """
    The configuration file or environment could not be loaded.
    """


class LocalStateError(GitDeployError):
    """
    A local checkout is in a state we refuse to correct automatically.
    """


class ClientRequestError(GitDeployError):
    """
    A webhook delivery was malformed or named an unknown repository.
    """


class RemoteAPIError(GitDeployError):
    """
    The GitHub API returned an unexpected response.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ''):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


    @classmethod
    def from_response(cls, response) -> 'RemoteAPIError':
        body = response.text.strip()
        return cls(f'{response.status_code}: {body}', response.status_code, body)


class CommandError(GitDeployError, CalledProcessError):
    """
    An external command exited non-zero or could not be spawned.
    """

    def __init__(self, returncode: int, cmd: Sequence[str], output: str = ''):
        CalledProcessError.__init__(self, returncode, cmd, output=output)


    def __str__(self) -> str:
        command = ' '.join(self.cmd)
        if self.output:
            return f'{command} exited with {self.returncode}: {self.output}'
        return f'{command} exited with {self.returncode}'


# The end.
