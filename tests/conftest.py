"""
Shared pytest fixtures for gitdeploy tests.

:author: Christopher O'Brien <obriencj@preoccupied.net>
:license: GNU General Public License v3
"""

import json
import os
import tempfile

import pytest

from preoccupied.gitdeploy import deploy
from preoccupied.gitdeploy.config import RepoConfig, ServiceConfig, Settings


ENV_VARS = [
    'EXTERNAL_URL',
    'GITHUB_TOKEN',
    'PORT',
    'GITDEPLOY_HOME',
    'CONFIG_PATH',
    'WEBHOOK_SECRET',
]


@pytest.fixture(autouse=True)
def clear_deploy_locks():
    """
    Locks bind to the event loop that first waits on them, and each
    test runs its own loop.
    """

    deploy._deploy_locks.clear()
    yield
    deploy._deploy_locks.clear()


@pytest.fixture
def temp_dir():
    """
    Create a temporary directory for tests.
    """

    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def mock_env_vars(monkeypatch):
    """
    Clear the gitdeploy environment variables for testing.
    """

    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)

    return monkeypatch


@pytest.fixture
def service_repo_config():
    """
    A repository with a systemd unit and an install command.
    """

    return RepoConfig(
        id='a/b',
        branch='main',
        install='make build',
        service=ServiceConfig(name='svc')
    )


@pytest.fixture
def plain_repo_config():
    """
    A repository without a systemd unit.
    """

    return RepoConfig(
        id='a/plain',
        install='make build'
    )


@pytest.fixture
def settings(temp_dir):
    """
    Settings rooted at a temporary home directory.
    """

    return Settings(
        external_url='https://deploy.example.com/hook',
        github_token='test-token',
        home=temp_dir,
        config_path=os.path.join(temp_dir, 'repos.json')
    )


@pytest.fixture
def write_repos(settings):
    """
    Write a repository mapping to the settings' config path.
    """

    def write(repos):
        with open(settings.config_path, 'w') as f:
            json.dump(repos, f)
        return settings.config_path

    return write


# The end.
