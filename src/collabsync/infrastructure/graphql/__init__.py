"""
GraphQL infrastructure package.

HTTP client, graphql-ws subscription transport, operation documents and
response decoders for the remote collaboration service.
"""

from collabsync.infrastructure.graphql.client import GraphQLHttpClient
from collabsync.infrastructure.graphql.remote_store import GraphQLRemoteStore
from collabsync.infrastructure.graphql.subscription import GraphQLSubscription

__all__ = [
    "GraphQLHttpClient",
    "GraphQLRemoteStore",
    "GraphQLSubscription",
]
