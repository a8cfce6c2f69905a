import asyncio
import random
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

__all__ = ['AccountRegistry', 'ApiDataPool']


class AccountRegistry(ABC):
    """
    Receives account bookkeeping updates from wallets.
    """

    @abstractmethod
    async def store_address(self, address: str):
        raise NotImplementedError

    @abstractmethod
    async def set_account_id(self, address: str, account_id: int):
        raise NotImplementedError


class ApiDataPool(AccountRegistry):
    """
    In-memory pool of known addresses and account ids, used to generate realistic API requests.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self._addresses: List[str] = []
        self._account_ids: Dict[str, int] = {}

    async def store_address(self, address: str):
        async with self._lock:
            if address not in self._addresses:
                self._addresses.append(address)

    async def set_account_id(self, address: str, account_id: int):
        async with self._lock:
            if address not in self._addresses:
                self._addresses.append(address)
            self._account_ids[address] = account_id

    def addresses(self) -> List[str]:
        return list(self._addresses)

    def account_id(self, address: str) -> Optional[int]:
        return self._account_ids.get(address)

    def random_address(self) -> str:
        if not self._addresses:
            raise RuntimeError("Data pool has no stored addresses")
        return random.choice(self._addresses)
