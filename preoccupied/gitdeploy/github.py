"""
Push hook registration against the GitHub REST API.

:author: Christopher O'Brien <obriencj@preoccupied.net>
:license: GNU General Public License v3
"""

import logging
from typing import Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from .errors import RemoteAPIError


logger = logging.getLogger(__name__)


API_URL = 'https://api.github.com'


class HookConfig(BaseModel):
    url: Optional[str] = None
    content_type: Optional[str] = None


class Hook(BaseModel):
    """
    A repository webhook as listed by the GitHub API
    """

    id: Optional[int] = None
    active: bool = False
    events: List[str] = Field(default_factory=list)
    config: HookConfig = Field(default_factory=HookConfig)


def hook_matches(hook: Hook, external_url: str) -> bool:
    """
    True if the hook already delivers push events as JSON to
    external_url.
    """

    return (hook.config.url == external_url and
            hook.active and
            'push' in hook.events and
            hook.config.content_type == 'json')


def _headers(token: str) -> Dict[str, str]:
    return {
        'Authorization': f'Bearer {token}',
        'Accept': 'application/vnd.github+json'
    }


async def list_hooks(client: httpx.AsyncClient, repo_id: str) -> List[Hook]:
    """
    Fetch every hook registered on the repository, following
    pagination.
    """

    hooks = []
    url = f'/repos/{repo_id}/hooks'
    params = {'per_page': 100}

    while url:
        r = await client.get(url, params=params)
        if not r.is_success:
            raise RemoteAPIError.from_response(r)

        try:
            page = r.json()
            if not isinstance(page, list):
                raise ValueError(f'expected a list of hooks, got {type(page).__name__}')
            hooks.extend(Hook.model_validate(h) for h in page)
        except (ValueError, ValidationError) as e:
            raise RemoteAPIError(f'Malformed hook list for {repo_id}: {e}',
                                 r.status_code, r.text) from e

        # the next link already carries the query string
        url = r.links.get('next', {}).get('url')
        params = None

    return hooks


async def create_hook(
        client: httpx.AsyncClient,
        repo_id: str,
        external_url: str,
        secret: Optional[str] = None) -> None:

    config = {'url': external_url, 'content_type': 'json'}
    if secret:
        config['secret'] = secret

    body = {
        'name': 'web',
        'active': True,
        'events': ['push'],
        'config': config,
    }

    r = await client.post(f'/repos/{repo_id}/hooks', json=body)
    if r.status_code != 201:
        raise RemoteAPIError.from_response(r)


async def ensure_hook(
        token: str,
        repo_id: str,
        external_url: str,
        secret: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None) -> bool:
    """
    Register a push webhook pointing at external_url on repo_id, unless
    an equivalent hook is already present. Existing hooks are never
    modified or removed.

    Returns True if a hook was created.
    """

    if client is None:
        async with httpx.AsyncClient(base_url=API_URL, headers=_headers(token)) as client:
            return await ensure_hook(token, repo_id, external_url, secret, client)

    try:
        hooks = await list_hooks(client, repo_id)
        if any(hook_matches(hook, external_url) for hook in hooks):
            logger.info(f'Webhook for {repo_id} already registered')
            return False

        logger.info(f'Registering webhook for {repo_id} at {external_url}')
        await create_hook(client, repo_id, external_url, secret)

    except httpx.HTTPError as e:
        raise RemoteAPIError(f'GitHub request for {repo_id} failed: {e}') from e

    return True


# The end.
