"""
Infrastructure layer package.

Contains all I/O and external system integrations:
- Configuration file loading
- Logging setup
- SQLite annotation index (sqlite/)
- GraphQL remote store client (graphql/)
"""

from collabsync.infrastructure.config_loader import ConfigLoader
from collabsync.infrastructure.logging_config import setup_logging
from collabsync.infrastructure.sqlite import AnnotationIndexStore
from collabsync.infrastructure.graphql import GraphQLRemoteStore

__all__ = [
    # Config
    "ConfigLoader",
    # Logging
    "setup_logging",
    # Storage
    "AnnotationIndexStore",
    # Remote
    "GraphQLRemoteStore",
]
