"""
Application layer package.

Contains the sync engine and the services that orchestrate a collaboration
session. Services coordinate between domain models and infrastructure.
"""

from collabsync.application.collab_client import CollabClient
from collabsync.application.document_service import DocumentService
from collabsync.application.error_sink import LoggingErrorSink
from collabsync.application.in_flight import InFlightOperations
from collabsync.application.session_service import SessionService
from collabsync.application.sync import SyncEngine

__all__ = [
    "CollabClient",
    "DocumentService",
    "InFlightOperations",
    "LoggingErrorSink",
    "SessionService",
    "SyncEngine",
]
