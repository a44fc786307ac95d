"""
Portal Sync

In-process case-management state for the court portals: processes, users,
notifications, auto-distribution and sync between sibling instances.
"""

from portal_sync.db.storage import FileStorage, MemoryStorage
from portal_sync.system import PortalSystem

__all__ = [
    'PortalSystem',
    'MemoryStorage',
    'FileStorage',
]
