"""
collabsync - Realtime annotation sync over a GraphQL collaboration service.

Keeps a host PDF viewer's annotations in sync with a remote store and with
other collaborators, through a durable local index of server IDs.

Usage:
    # CLI
    collabsync index list

    # Programmatic
    from collabsync import CollabClient

    async with CollabClient(settings, viewer=my_viewer) as client:
        await client.login_with_password(email, password)
        await client.open_document("doc-1")
"""

__version__ = "0.1.0"
__author__ = "collabsync Team"

from collabsync.application.collab_client import CollabClient

__all__ = ["CollabClient", "__version__"]
