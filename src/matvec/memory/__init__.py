"""
Memory subsystem components.

This module contains the storage-side components:
- StorageDevice: Variable-latency read-only row store
- RowBuffer: Fixed-capacity elastic queue between fetch and compute
"""

from .row_buffer import RowBuffer
from .storage import StorageDevice

__all__ = [
    "StorageDevice",
    "RowBuffer",
]
