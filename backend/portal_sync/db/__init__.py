# portal_sync/db/__init__.py

"""
Data Module

Contains the portal records, Pydantic input schemas and storage areas.
"""

from portal_sync.db import models, schemas
from portal_sync.db.storage import StorageArea, MemoryStorage, FileStorage

__all__ = [
    'StorageArea',
    'MemoryStorage',
    'FileStorage',
    'models',
    'schemas'
]
