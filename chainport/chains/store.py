# chainport/chains/store.py
"""
Durable chain storage backed by SQLite.

Chains live in one table namespaced by owner (owner id -> chain id ->
document). The document column holds the ChainDefinition as JSON.
"""

import logging
import sqlite3
from typing import List, Optional

import aiosqlite
from pydantic import ValidationError as SchemaError

from chainport.errors import StoreUnavailableError
from chainport.schema import ChainDefinition

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS chains (
    owner_id   TEXT NOT NULL,
    chain_id   TEXT NOT NULL,
    document   TEXT NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (owner_id, chain_id)
)
"""


class ChainStore:
    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self) -> None:
        try:
            self._conn = await aiosqlite.connect(self.db_path, check_same_thread=False)
            await self._conn.execute(SCHEMA)
            await self._conn.execute("CREATE INDEX IF NOT EXISTS chains_by_id ON chains (chain_id)")
            await self._conn.commit()
        except (sqlite3.Error, OSError) as e:
            if self._conn is not None:
                await self._conn.close()
            self._conn = None
            raise StoreUnavailableError(f"Could not open chain store at {self.db_path}: {e}") from e
        logger.info("Chain store opened at %s", self.db_path)

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StoreUnavailableError("Chain store is not connected")
        return self._conn

    async def put(self, chain: ChainDefinition) -> None:
        conn = self._connection()
        try:
            await conn.execute(
                "INSERT INTO chains (owner_id, chain_id, document, created_at) VALUES (?, ?, ?, ?)",
                (chain.ownerId, chain.id, chain.model_dump_json(), chain.createdAt),
            )
            await conn.commit()
        except (sqlite3.Error, ValueError) as e:
            raise StoreUnavailableError(f"Could not save chain {chain.id}: {e}") from e

    async def find(self, chain_id: str) -> Optional[ChainDefinition]:
        """Look a chain up by id across every owner."""
        return await self._fetch_one(
            "SELECT document FROM chains WHERE chain_id = ? LIMIT 1",
            (chain_id,),
        )

    async def find_containing(self, fragment: str) -> Optional[ChainDefinition]:
        """First chain whose id contains ``fragment``. Which one wins is unspecified."""
        return await self._fetch_one(
            "SELECT document FROM chains WHERE instr(chain_id, ?) > 0 LIMIT 1",
            (fragment,),
        )

    async def list_owner(self, owner_id: str) -> List[ChainDefinition]:
        rows = await self._fetch_all(
            "SELECT document FROM chains WHERE owner_id = ? ORDER BY created_at DESC",
            (owner_id,),
        )
        return [chain for chain in (self._decode(row[0]) for row in rows) if chain is not None]

    async def _fetch_one(self, sql: str, params: tuple) -> Optional[ChainDefinition]:
        conn = self._connection()
        try:
            async with conn.execute(sql, params) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Chain store query failed: {e}") from e
        if row is None:
            return None
        return self._decode(row[0])

    async def _fetch_all(self, sql: str, params: tuple) -> List[tuple]:
        conn = self._connection()
        try:
            async with conn.execute(sql, params) as cursor:
                return list(await cursor.fetchall())
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Chain store query failed: {e}") from e

    @staticmethod
    def _decode(document: str) -> Optional[ChainDefinition]:
        try:
            return ChainDefinition.model_validate_json(document)
        except SchemaError as e:
            # corrupt rows read as missing
            logger.error("Skipping unreadable chain document: %s", e)
            return None
