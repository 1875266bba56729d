# chainport/chains/cache.py
"""
In-process chain cache.

A plain key/value map guarded by a lock. It holds compiled chains so that
repeat calls skip the durable store; it is lost on restart and never writes
through to persistence on its own.
"""

import threading
from typing import Dict, List, Optional

from chainport.schema import ChainDefinition


class ChainCache:
    def __init__(self):
        self._items: Dict[str, ChainDefinition] = {}
        self._lock = threading.RLock()

    def get(self, chain_id: str) -> Optional[ChainDefinition]:
        with self._lock:
            return self._items.get(chain_id)

    def set(self, chain_id: str, chain: ChainDefinition) -> None:
        with self._lock:
            self._items[chain_id] = chain

    def delete(self, chain_id: str) -> bool:
        with self._lock:
            return self._items.pop(chain_id, None) is not None

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._items)

    def find_containing(self, fragment: str) -> Optional[ChainDefinition]:
        """First cached chain whose id contains ``fragment``."""
        with self._lock:
            for chain_id, chain in self._items.items():
                if fragment in chain_id:
                    return chain
        return None

    def __contains__(self, chain_id: str) -> bool:
        with self._lock:
            return chain_id in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
