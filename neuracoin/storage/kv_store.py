import json
import logging
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from neuracoin.ledger.errors import PersistenceError
from neuracoin.models import StoredDocument

logger = logging.getLogger(__name__)


def _check_key(key: str):
    if not key or not key.strip():
        raise ValueError("Storage key cannot be empty")


class KeyValueStore:
    """Key/Value Store - JSON documents in the stored_documents table

    Writes join the caller's session and are never committed here, so every
    write made for one operation lands in the same database transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, key: str, for_update: bool = False) -> Optional[Any]:
        """
        Read the document stored under key, None if absent.
        for_update takes a row lock on backends that support SELECT FOR UPDATE.
        """
        _check_key(key)
        stmt = select(StoredDocument).where(StoredDocument.key == key)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        try:
            result = await self.db.execute(stmt)
            document = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Storage read failed for '{key}': {e}", exc_info=True)
            raise PersistenceError(f"Could not read '{key}'") from e

        if document is None:
            return None

        try:
            return json.loads(document.value)
        except ValueError as e:
            logger.error(f"Stored value for '{key}' is not valid JSON: {e}")
            raise PersistenceError(f"Could not decode '{key}'") from e

    async def set(self, key: str, value: Any):
        _check_key(key)
        payload = json.dumps(value, separators=(",", ":"))

        try:
            document = await self.db.get(StoredDocument, key)
            if document is None:
                self.db.add(StoredDocument(key=key, value=payload, version=1))
            else:
                document.value = payload
                document.version += 1
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Storage write failed for '{key}': {e}", exc_info=True)
            raise PersistenceError(f"Could not write '{key}'") from e

    async def remove(self, key: str):
        _check_key(key)
        try:
            document = await self.db.get(StoredDocument, key)
            if document is not None:
                await self.db.delete(document)
                await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Storage delete failed for '{key}': {e}", exc_info=True)
            raise PersistenceError(f"Could not delete '{key}'") from e

    async def keys(self, prefix: str = "") -> List[str]:
        stmt = select(StoredDocument.key).order_by(StoredDocument.key)
        if prefix:
            stmt = stmt.where(StoredDocument.key.startswith(prefix, autoescape=True))

        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Storage key scan failed for '{prefix}': {e}", exc_info=True)
            raise PersistenceError(f"Could not list keys for '{prefix}'") from e
        return list(result.scalars().all())
