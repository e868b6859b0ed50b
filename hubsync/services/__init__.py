"""
Services for HubSync.

High-level synchronization services:
- HubSyncEngine: Full passes, incremental handlers, commands
- HubRegistry: Hub naming and lookup from vault snapshots
- HubContentBuilder: Hub creation, renaming and content
- LinkUpserter: Leading hub link block of every note
- HubStabilizer: Bounded wait for a hub's final name
- WriteLock: Self-write suppression window
"""

from hubsync.services.hub_builder import HubContentBuilder
from hubsync.services.hub_registry import HubRegistry
from hubsync.services.link_upserter import LinkUpserter
from hubsync.services.reconciler import HubSyncEngine
from hubsync.services.stabilizer import HubStabilizer
from hubsync.services.write_lock import WriteLock

__all__ = [
    "HubSyncEngine",
    "HubRegistry",
    "HubContentBuilder",
    "LinkUpserter",
    "HubStabilizer",
    "WriteLock",
]
