"""
Configuration models and loading for the gitdeploy application.

Neither the repository file nor the environment is cached; every call
to load_repos() or get_settings() reads them afresh, so edits apply to
the next webhook delivery without a restart.

:author: Christopher O'Brien <obriencj@preoccupied.net>
:license: GNU General Public License v3
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, RootModel, ValidationError, field_validator, model_validator

from .errors import ConfigurationError


logger = logging.getLogger(__name__)


DEFAULT_PORT = 2067
CONFIG_FILENAME = 'repos.json'


class ServiceConfig(BaseModel):
    """
    systemd unit bound to a repository. Only the name is acted upon
    here; the remaining fields are for the tooling that writes units.
    """

    name: str = ''
    env: Dict[str, str] = Field(default_factory=dict)
    start: str = ''
    user: str = ''
    dir: str = ''


class RepoConfig(BaseModel):
    """
    Repository configuration
    """

    id: str
    branch: str = ''
    install: str = ''
    service: Optional[ServiceConfig] = None


    @field_validator('id')
    def check_id(cls, v: str) -> str:
        owner, sep, name = v.partition('/')
        if not (owner and sep and name) or '/' in name:
            raise ValueError(f"repository id '{v}' must be of the form owner/name")
        return v


    @property
    def name(self) -> str:
        return self.id.split('/')[1]


    @property
    def git_url(self) -> str:
        return f'https://github.com/{self.id}.git'


    @property
    def has_service(self) -> bool:
        return self.service is not None and bool(self.service.name)


class RootConfig(RootModel[Dict[str, RepoConfig]]):
    """
    The full repository file, a mapping of "owner/name" to RepoConfig
    """

    root: Dict[str, RepoConfig] = Field(default_factory=dict)


    @model_validator(mode='before')
    def apply_id_defaults(cls, v: Any) -> Any:
        """
        Entries without an explicit id take it from their key.
        """

        if not isinstance(v, dict):
            return v

        fixed = {}
        for repo_id, repo in v.items():
            if isinstance(repo, dict):
                repo = repo.copy()
                repo.setdefault('id', repo_id)
            fixed[repo_id] = repo
        return fixed


    def __iter__(self) -> Iterator[Tuple[str, RepoConfig]]:
        return iter(self.root.items())


    def __len__(self) -> int:
        return len(self.root)


    def get(self, repo_id: str) -> Optional[RepoConfig]:
        return self.root.get(repo_id)


class Settings(BaseModel):
    """
    Process settings taken from the environment
    """

    external_url: str
    github_token: str
    port: int = DEFAULT_PORT
    home: Path
    config_path: Path
    webhook_secret: Optional[str] = None


    def repo_path(self, repo: RepoConfig) -> Path:
        """
        Local checkout directory for the given repository.
        """

        return self.home / repo.name


def _settings_from_env() -> Dict[str, Any]:
    """
    Build the settings dictionary from environment variables.
    """

    home = os.environ.get('GITDEPLOY_HOME') or os.environ.get('HOME') or str(Path.home())
    data = {
        'home': home,
        'config_path': os.environ.get('CONFIG_PATH') or os.path.join(home, CONFIG_FILENAME),
    }

    pairs = (
        ('EXTERNAL_URL', 'external_url'),
        ('GITHUB_TOKEN', 'github_token'),
        ('PORT', 'port'),
        ('WEBHOOK_SECRET', 'webhook_secret'))

    for env_var, config_key in pairs:
        value = os.environ.get(env_var)
        if value:
            data[config_key] = value

    return data


def get_settings() -> Settings:
    """
    Load process settings from the environment.
    """

    try:
        return Settings.model_validate(_settings_from_env())
    except ValidationError as e:
        raise ConfigurationError(f'Invalid environment: {e}') from e


def load_repos(config_path: Optional[Path] = None) -> RootConfig:
    """
    Read the repository file. A .json file is parsed as strict JSON;
    any other suffix is read as YAML.
    """

    if config_path is None:
        config_path = get_settings().config_path

    is_json = Path(config_path).suffix == '.json'

    try:
        with open(config_path, 'r') as f:
            text = f.read()
        config_data = None if is_json else yaml.safe_load(text)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f'Cannot read {config_path}: {e}') from e

    try:
        if is_json and text.strip():
            config = RootConfig.model_validate_json(text)
        else:
            config = RootConfig.model_validate(config_data or {})
    except ValidationError as e:
        raise ConfigurationError(f'Invalid configuration in {config_path}: {e}') from e

    logger.debug(f'Loaded configuration with {len(config)} repositories')
    return config


# The end.
