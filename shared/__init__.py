"""
MAMACARE Shared Module

Common utilities used across all services.
"""

from .storage import LocalSessionStorage, get_storage, StoredRecord

__all__ = [
    'LocalSessionStorage',
    'get_storage',
    'StoredRecord',
]
