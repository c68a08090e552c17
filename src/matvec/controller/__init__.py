"""
Controller components.

- FetchSequencer: Storage -> row buffer transfers
"""

from .fetch import FetchSequencer

__all__ = ["FetchSequencer"]
