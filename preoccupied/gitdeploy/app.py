"""
FastAPI webhook application for the gitdeploy service.

:author: Christopher O'Brien <obriencj@preoccupied.net>
:license: GNU General Public License v3
"""

import hashlib
import hmac
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ValidationError

from .config import get_settings, load_repos
from .deploy import deploy_repo
from .errors import ClientRequestError, GitDeployError
from .github import ensure_hook
from .gitsync import sync_git_repo


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class PushRepository(BaseModel):
    """
    Repository identity carried by a push payload
    """

    name: str
    full_name: str


class PushDelivery(BaseModel):
    """
    The part of a GitHub push payload we act upon
    """

    repository: PushRepository


async def reconcile() -> None:
    """
    Bring every configured checkout and its push hook in line with the
    configuration. The first failure aborts the pass.
    """

    settings = get_settings()
    config = load_repos(settings.config_path)
    token = settings.github_token

    for repo_id, repo in config:
        logger.info(f"Syncing repository '{repo_id}' on startup...")
        await sync_git_repo(settings.repo_path(repo), repo.git_url, repo.branch)
        await ensure_hook(token, repo.id, settings.external_url, settings.webhook_secret)
        logger.info(f"Successfully synced repository '{repo_id}'")


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    """
    Lifespan event handler for the app. A failed reconciliation
    propagates so that the server never starts listening.
    """

    logger.info('Starting up...')

    try:
        await reconcile()
    except Exception as e:
        logger.error(f'Failed to load configuration or sync repositories: {e}', exc_info=True)
        raise

    try:
        yield
    finally:

        logger.info('Shutting down...')


app = FastAPI(lifespan=app_lifespan)


@app.exception_handler(ClientRequestError)
async def client_error_handler(request: Request, exc: ClientRequestError):
    return PlainTextResponse(str(exc), status_code=400)


@app.exception_handler(GitDeployError)
async def deploy_error_handler(request: Request, exc: GitDeployError):
    return PlainTextResponse(str(exc), status_code=500)


def check_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    """
    Verify the X-Hub-Signature-256 header against the request body.
    """

    if not signature:
        return False

    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(f'sha256={digest}', signature)


def parse_delivery(body: bytes) -> PushDelivery:
    try:
        return PushDelivery.model_validate_json(body)
    except ValidationError as e:
        raise ClientRequestError(f'Malformed push payload: {e}') from e


@app.api_route('/{path:path}', methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE'])
async def webhook(
        request: Request,
        x_github_event: str = Header('push'),
        x_hub_signature_256: Optional[str] = Header(None)):
    """
    Deploy the repository named by a push delivery
    """

    start = time.monotonic()

    settings = get_settings()
    body = await request.body()

    if settings.webhook_secret and not check_signature(settings.webhook_secret, body, x_hub_signature_256):
        raise HTTPException(status_code=401, detail='Bad signature')

    if x_github_event == 'ping':
        return PlainTextResponse('pong')
    elif x_github_event != 'push':
        logger.info(f'Ignoring {x_github_event} event')
        return PlainTextResponse(f'ignored {x_github_event}')

    delivery = parse_delivery(body)
    repo_id = delivery.repository.full_name

    repo = load_repos(settings.config_path).get(repo_id)
    if repo is None:
        raise ClientRequestError(f'repo {repo_id} not configured')

    try:
        await deploy_repo(repo, settings.repo_path(repo))
    except GitDeployError as e:
        logger.error(f"Error deploying repo '{repo_id}': {e}", exc_info=True)
        raise

    elapsed = int((time.monotonic() - start) * 1000)
    return PlainTextResponse(f'ok in {elapsed} ms')


# The end.
