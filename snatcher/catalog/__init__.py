"""
Track catalog: the persisted list of tracks the user has added.
"""

from .models import TrackRecord
from .catalog import Catalog, get_catalog, reset_catalog

__all__ = [
    'TrackRecord',
    'Catalog',
    'get_catalog',
    'reset_catalog',
]
