"""
SQLite infrastructure package.

Provides the durable local annotation index.
"""

from collabsync.infrastructure.sqlite.store import AnnotationIndexStore, SCHEMA_VERSION

__all__ = [
    "AnnotationIndexStore",
    "SCHEMA_VERSION",
]
