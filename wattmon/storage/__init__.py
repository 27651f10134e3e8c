"""Persistence for power samples and sessions."""

from wattmon.storage.base import Store
from wattmon.storage.json_store import JsonStore

__all__ = ["JsonStore", "Store"]
