"""
Persistence package.

The document store is the only stateful collaborator of the support
service. ``base`` defines the protocol; ``memory`` keeps documents in
process (tests and local runs) and ``postgres`` stores them as JSONB rows.
Both enforce one active configuration per tenant and support type.
"""

from .base import DocumentStore
from .memory import InMemoryDocumentStore


def create_store(backend: str, dsn: str = "", **pool_options) -> DocumentStore:
    """Build the store named by configuration."""
    if backend == "memory":
        return InMemoryDocumentStore()
    if backend == "postgres":
        from .postgres import PostgreSQLDocumentStore
        return PostgreSQLDocumentStore(dsn, **pool_options)
    raise ValueError(f"unknown store backend: {backend}")


__all__ = ["DocumentStore", "InMemoryDocumentStore", "create_store"]
