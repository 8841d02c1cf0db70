"""
Deploy sequence run for each push delivery.

:author: Christopher O'Brien <obriencj@preoccupied.net>
:license: GNU General Public License v3
"""

import asyncio
import logging
from collections import defaultdict
from typing import Dict

from .config import RepoConfig
from .gitsync import PathLike, pull
from .process import run, run_shell


logger = logging.getLogger(__name__)


# One lock per repository id, held for a whole deploy sequence
_deploy_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)


def deploy_lock(repo_id: str) -> asyncio.Lock:
    return _deploy_locks[repo_id]


async def systemctl(*args: str) -> None:
    logger.info(f"systemctl {' '.join(args)}")
    await run('systemctl', *args, capture=False)


async def deploy_repo(repo: RepoConfig, repo_dir: PathLike) -> None:
    """
    Pull, stop, install, daemon-reload, start. The first failing step
    raises and nothing after it runs; a failed install leaves the
    service stopped. Steps that need a unit are skipped when the
    repository has none.
    """

    async with deploy_lock(repo.id):
        logger.info(f'Deploying {repo.id} in {repo_dir}')

        await pull(repo_dir)

        if repo.has_service:
            await systemctl('stop', repo.service.name)

        if repo.install:
            logger.info(f'Installing {repo.id}: {repo.install}')
            output = await run_shell(repo.install, cwd=str(repo_dir))
            if output:
                logger.info(output)

        if repo.has_service:
            await systemctl('daemon-reload')
            await systemctl('start', repo.service.name)

        logger.info(f'Deployed {repo.id}')


# The end.
