"""
Command line entry point: reconcile, then serve webhooks.

:author: Christopher O'Brien <obriencj@preoccupied.net>
:license: GNU General Public License v3
"""

import logging
import sys

import uvicorn

from .app import app
from .config import get_settings
from .errors import ConfigurationError


logger = logging.getLogger(__name__)


def main() -> None:
    try:
        settings = get_settings()
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)

    # reconciliation runs in the app lifespan; uvicorn exits non-zero
    # if it fails
    uvicorn.run(app, host='0.0.0.0', port=settings.port, lifespan='on')


if __name__ == '__main__':
    main()


# The end.
