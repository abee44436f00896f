"""Database Models"""
from neuracoin.models.stored_document import StoredDocument
from neuracoin.models.idempotency_log import IdempotencyLog

__all__ = [
    "StoredDocument",
    "IdempotencyLog",
]
