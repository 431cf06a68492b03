"""
Document store package.

Provides the lookup abstraction over the managed content store
(Firestore REST, in-memory).
"""

from .base import DocumentStore
from .firestore_store import FirestoreDocumentStore, decode_document, decode_value
from .memory_store import InMemoryDocumentStore

__all__ = [
    "DocumentStore",
    "FirestoreDocumentStore",
    "InMemoryDocumentStore",
    "decode_document",
    "decode_value",
]
