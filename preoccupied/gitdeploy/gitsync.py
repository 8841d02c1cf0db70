"""
Local checkout validation and git synchronization for the gitdeploy
application.

:author: Christopher O'Brien <obriencj@preoccupied.net>
:license: GNU General Public License v3
"""

import enum
import logging
import os
import stat
from pathlib import Path
from typing import Union

from .errors import CommandError, LocalStateError
from .process import run


logger = logging.getLogger(__name__)


PathLike = Union[str, Path]


class CheckoutStatus(enum.Enum):
    ABSENT = 'absent'
    OCCUPIED_BY_FILE = 'occupied by file'
    WRONG_BRANCH = 'wrong branch'
    VALID = 'valid'


async def git_branch(repo_dir: PathLike) -> str:
    """
    The branch currently checked out in repo_dir. Raises
    LocalStateError if repo_dir is not a git checkout or its HEAD is
    detached.
    """

    try:
        branch = await run('git', '-C', str(repo_dir), 'rev-parse', '--abbrev-ref', 'HEAD')
    except CommandError as e:
        raise LocalStateError(f'{repo_dir} is not a git checkout: {e.output}') from e

    if not branch or branch == 'HEAD':
        raise LocalStateError(f'{repo_dir} has a detached HEAD')

    return branch


async def checkout_status(repo_dir: PathLike, git_branch_name: str) -> CheckoutStatus:
    """
    Classify the local state of repo_dir against the expected branch.
    An empty git_branch_name accepts whatever branch the clone landed
    on. Filesystem errors other than a missing path propagate.
    """

    try:
        st = os.stat(repo_dir)
    except FileNotFoundError:
        return CheckoutStatus.ABSENT

    if not stat.S_ISDIR(st.st_mode):
        return CheckoutStatus.OCCUPIED_BY_FILE

    current = await git_branch(repo_dir)
    if git_branch_name and current != git_branch_name:
        logger.warning(f'{repo_dir} is on branch {current}, expected {git_branch_name}')
        return CheckoutStatus.WRONG_BRANCH

    return CheckoutStatus.VALID


async def clone(repo_dir: PathLike, git_url: str, git_branch_name: str = '') -> None:
    args = ['git', 'clone']
    if git_branch_name:
        args.extend(('--branch', git_branch_name, '--single-branch'))
    args.extend((git_url, str(repo_dir)))

    logger.info(f'Cloning {git_url} to {repo_dir}')
    await run(*args)


async def pull(repo_dir: PathLike) -> None:
    """
    Fast-forward the checkout. A diverged history fails rather than
    merging.
    """

    logger.info(f'Pulling {repo_dir}')
    await run('git', 'pull', '--ff-only', cwd=str(repo_dir))


async def sync_git_repo(repo_dir: PathLike, git_url: str, git_branch_name: str = '') -> CheckoutStatus:
    """
    Initial or update sync of the checkout at repo_dir. Returns the
    status observed before syncing.
    """

    status = await checkout_status(repo_dir, git_branch_name)

    if status is CheckoutStatus.ABSENT:
        await clone(repo_dir, git_url, git_branch_name)

    elif status is CheckoutStatus.OCCUPIED_BY_FILE:
        raise LocalStateError(f'{repo_dir} is a file')

    elif status is CheckoutStatus.WRONG_BRANCH:
        raise LocalStateError(f'{repo_dir} is checked out to the wrong branch, '
                              f'expected {git_branch_name}')

    else:
        await pull(repo_dir)

    # current commit, so it shows in the logs
    head = await run('git', 'log', '-1', '--oneline', cwd=str(repo_dir))
    logger.info(f'{repo_dir} at {head}')

    return status


# The end.
