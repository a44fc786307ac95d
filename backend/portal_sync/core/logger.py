# portal_sync/core/logger.py
"""
Package logger.

Modules either import the shared ``logger`` from here or call
``logging.getLogger(__name__)``; both end up under the ``portal_sync`` tree.
"""
import logging
import sys

from portal_sync.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _configure() -> logging.Logger:
    root = logging.getLogger("portal_sync")
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(settings.LOG_LEVEL)
    return root


logger = _configure()
