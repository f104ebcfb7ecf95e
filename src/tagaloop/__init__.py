"""
Tagaloop — a small encrypted shell for labeled secrets.

Secrets live in memory while the shell runs and are written,
encrypted, to a single file on ``save``.
"""

import os

__version__ = "2.0.0"
__author__ = "smilinTux"

TAGALOOP_HOME = os.environ.get("TAGALOOP_HOME", "~/.tagaloop")
