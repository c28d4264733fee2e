"""
Adapters layer - Clinic data sources.
"""

from .snapshot_store import SnapshotStore

__all__ = ["SnapshotStore"]
