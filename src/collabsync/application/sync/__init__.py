"""
Sync Package - Realtime Annotation Synchronization.

Translates annotation changes between the host viewer and the remote
collaboration service, keeping the local annotation index current.

Usage:
    from collabsync.application.sync import SyncEngine

    engine = SyncEngine(index, remote, context, viewer)
    await engine.local_add(annotation)
"""

from collabsync.application.sync.engine import SyncEngine

__all__ = ["SyncEngine"]
