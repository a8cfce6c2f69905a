import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from web3.logs import DISCARD

from zksync_sdk.lib import ZkSyncLibrary
from zksync_sdk.transport.http import HttpJsonRPCTransport
from zksync_sdk.types import ChainId, EthOpInfo
from zksync_sdk.zksync_provider import ZkSyncProviderInterface, ZkSyncProviderV01
from zksync_loadtest.config import LoadtestConfig
from zksync_loadtest.error import PriorityOpNotFound
from zksync_loadtest.registry import AccountRegistry, ApiDataPool

__all__ = ['Monitor', 'PriorityOp']

logger = logging.getLogger(__name__)


@dataclass
class PriorityOp:
    serial_id: int
    op_type: int
    eth_hash: str
    deadline_block: int


class Monitor:
    """
    Shared state of a load test: the zkSync provider, the account registry and the signing library.
    """

    def __init__(self, provider: ZkSyncProviderInterface, chain_id: ChainId,
                 api_data_pool: Optional[AccountRegistry] = None,
                 library_path: Optional[str] = None):
        self.provider = provider
        self.chain_id = chain_id
        self.api_data_pool = api_data_pool if api_data_pool is not None else ApiDataPool()
        self.library_path = library_path
        self._library: Optional[ZkSyncLibrary] = None

    @classmethod
    def from_config(cls, config: LoadtestConfig):
        provider = ZkSyncProviderV01(provider=HttpJsonRPCTransport(network=config.network()))
        return cls(provider, config.chain_id, library_path=config.library_path)

    @property
    def library(self) -> ZkSyncLibrary:
        if self._library is None:
            self._library = ZkSyncLibrary(self.library_path)
        return self._library

    def get_priority_op(self, eth_provider, receipt) -> PriorityOp:
        """
        Extracts the priority operation emitted by the zkSync contract in a mined transaction.
        """
        tx_hash = receipt['transactionHash'].hex()
        events = eth_provider.zksync.contract.events.NewPriorityRequest().process_receipt(receipt, errors=DISCARD)
        if not events:
            raise PriorityOpNotFound(tx_hash)

        args = events[0]['args']
        priority_op = PriorityOp(serial_id=args['serialId'],
                                 op_type=args['opType'],
                                 eth_hash=tx_hash,
                                 deadline_block=args['expirationBlock'])
        logger.debug("Priority operation %d found in %s", priority_op.serial_id, tx_hash)
        return priority_op

    async def wait_for_priority_op(self, priority_op: PriorityOp, attempts: Optional[int] = None,
                                   attempts_timeout: Optional[int] = None) -> Optional[EthOpInfo]:
        """
        Polls the operation status until zkSync executes it.

        Returns None if it was not executed within `attempts` polls; `attempts_timeout` is in milliseconds.
        """
        while True:
            if attempts is not None:
                if attempts <= 0:
                    return None
            info = await self.provider.get_priority_op_status(priority_op.serial_id)
            if attempts is not None:
                attempts -= 1
            if info.executed:
                return info
            if attempts_timeout is not None:
                await asyncio.sleep(attempts_timeout / 1000)
