# chainport/chains/repository.py
"""
Chain Repository.

Maps a chain id to its definition, hiding the split between the in-process
cache and the durable per-owner store. A store outage degrades to
"cache only": lookups fall back to whatever is cached and compiles still
succeed, flagged with a warning.
"""

import logging
import random
import re
import string
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from chainport.chains.cache import ChainCache
from chainport.chains.store import ChainStore
from chainport.errors import PersistenceDegraded, StoreUnavailableError, ValidationError
from chainport.schema import ChainDefinition, ChainStep, CreatedChain, Owner

logger = logging.getLogger(__name__)

MEMORY_ONLY_WARNING = "This chain is only stored in memory and will be lost when the server restarts"

PORT_RANGE = (3001, 9000)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_chain_id() -> str:
    """``<epoch-millis>-<8 char base36 suffix>``"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=8))
    return f"{int(time.time() * 1000)}-{suffix}"


def safe_user_name(owner: Owner) -> str:
    """URL-safe owner name: display name, else the local part of the email."""
    name = owner.displayName or (owner.email.split("@")[0] if owner.email else "") or "user"
    return re.sub(r"[^a-zA-Z0-9]", "", name).lower() or "user"


def endpoint_url(host: str, user_name: str, port_number: int, chain_id: str) -> str:
    protocol = "http" if "localhost" in host else "https"
    return f"{protocol}://{host}/api/chains/{user_name}/{port_number}/{chain_id}"


class ChainRepository:
    def __init__(self, cache: ChainCache, store: ChainStore):
        self.cache = cache
        self.store = store

    async def resolve(self, chain_id: str) -> Optional[ChainDefinition]:
        """
        Return the chain for ``chain_id`` or None.

        Cache first, then the durable store (populating the cache on a hit).
        When the store is unreachable the cached copy is served if there is
        one.
        """
        chain = self.cache.get(chain_id)
        if chain is not None:
            logger.debug("Chain %s served from cache", chain_id)
            return chain

        try:
            chain = await self.store.find(chain_id)
        except StoreUnavailableError as e:
            logger.error("Chain store unavailable while resolving %s: %s", chain_id, e)
            # a concurrent create may have cached it meanwhile
            return self.cache.get(chain_id)

        if chain is None:
            logger.info("Chain %s not found in cache or store", chain_id)
            return None

        self.cache.set(chain_id, chain)
        return chain

    async def resolve_by_prefix(self, fragment: str) -> Optional[ChainDefinition]:
        """
        Return any chain whose id contains ``fragment``.

        When several ids match, which one is returned is unspecified.
        """
        chain = self.cache.find_containing(fragment)
        if chain is not None:
            return chain

        try:
            chain = await self.store.find_containing(fragment)
        except StoreUnavailableError as e:
            logger.error("Chain store unavailable while searching for %r: %s", fragment, e)
            return None

        if chain is not None:
            self.cache.set(chain.id, chain)
        return chain

    async def create(
        self,
        steps: List[ChainStep],
        owner: Owner,
        credential: str,
        host: str,
    ) -> CreatedChain:
        """
        Compile ``steps`` into a new chain owned by ``owner``.

        The chain is always cached. If it cannot be written to the durable
        store the result carries a warning instead of failing.
        """
        if not steps:
            raise ValidationError("Invalid chain data. Chain must have at least one step.")
        if not credential:
            raise ValidationError("OpenAI API key is required")

        chain_id = generate_chain_id()
        port_number = random.randint(*PORT_RANGE)
        user_name = safe_user_name(owner)
        chain = ChainDefinition(
            id=chain_id,
            steps=list(steps),
            credential=credential,
            ownerId=owner.uid or "anonymous",
            ownerEmail=owner.email,
            userName=user_name,
            createdAt=datetime.now(timezone.utc).isoformat(),
            endpointUrl=endpoint_url(host, user_name, port_number, chain_id),
            portNumber=port_number,
        )

        warning = None
        try:
            await self._persist(chain)
            logger.info("Saved chain %s for owner %s", chain_id, chain.ownerId)
        except PersistenceDegraded as e:
            logger.warning("Creating memory-only chain %s: %s", chain_id, e)
            warning = MEMORY_ONLY_WARNING

        self.cache.set(chain_id, chain)
        return CreatedChain(chain=chain, warning=warning)

    async def _persist(self, chain: ChainDefinition) -> None:
        try:
            await self.store.put(chain)
        except StoreUnavailableError as e:
            raise PersistenceDegraded(str(e)) from e

    async def list_for_owner(self, owner_id: str) -> List[ChainDefinition]:
        """Chains owned by ``owner_id``, newest first."""
        return await self.store.list_owner(owner_id)

    async def inspect(self, chain_id: str) -> Dict[str, Any]:
        """Where a chain currently lives, for debugging."""
        cached = self.cache.get(chain_id)
        stored = None
        store_error = None
        try:
            stored = await self.store.find(chain_id)
        except StoreUnavailableError as e:
            store_error = str(e)

        resolved = await self.resolve(chain_id)
        return {
            "chainId": chain_id,
            "existsInMemory": cached is not None,
            "existsInStore": stored is not None,
            "foundByRepository": resolved is not None,
            "userOwner": stored.ownerId if stored else None,
            "memoryStore": self.cache.keys(),
            "hasApiKey": bool((stored or cached).credential) if (stored or cached) else False,
            "storeError": store_error,
        }
