"""
Keep GitHub checkouts in sync and redeploy their systemd services on
push.

:author: Christopher O'Brien <obriencj@preoccupied.net>
:license: GNU General Public License v3
"""

from preoccupied.gitdeploy.app import app, reconcile
from preoccupied.gitdeploy.config import get_settings, load_repos


__all__ = ['app', 'get_settings', 'load_repos', 'reconcile']


# The end.
