"""
Core module initialization
"""

from stockdesk.core.config import Settings, settings
from stockdesk.core.storage import KeyValueStore, get_store

__all__ = ["Settings", "settings", "KeyValueStore", "get_store"]
