"""
Configuration domain package.

This package contains the pydantic models for client configuration.
"""

from .client_settings import ClientSettings, ClientTimeouts

__all__ = [
    "ClientSettings",
    "ClientTimeouts",
]
