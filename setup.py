# SPDX-License-Identifier: GPL-3.0-only

"""setup
Minimal setuptools invocation for packaging the preoccupied.gitdeploy distribution.

:author: Christopher O'Brien <obriencj@preoccupied.net>
:license: GNU General Public License v3
"""

from setuptools import setup


if __name__ == "__main__":
    setup()

# The end.
