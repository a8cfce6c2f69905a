import asyncio
import logging

from eth_account.signers.base import BaseAccount
from web3 import HTTPProvider, Web3

from zksync_sdk.contract_utils import erc20_abi
from zksync_sdk.ethereum_provider import EthereumProvider
from zksync_sdk.types import Token
from zksync_sdk.zksync import ERC20Contract, ZkSync
from zksync_loadtest.error import EthereumError

__all__ = ['LoadtestEthereumProvider', 'ETH_TRANSFER_GAS']

logger = logging.getLogger(__name__)

ETH_TRANSFER_GAS = 21000


class LoadtestEthereumProvider(EthereumProvider):
    """
    Ethereum provider working with integer amounts (wei and token base units).

    Blocking web3 calls run in a worker thread, every failure is reported as `EthereumError`.
    Operations sending a transaction return once it is mined. They run one at a time per
    account, since each of them reads the account nonce before signing.
    """

    def __init__(self, web3: Web3, zksync: ZkSync):
        super().__init__(web3, zksync)
        self._send_lock = asyncio.Lock()

    @classmethod
    def from_account(cls, web3_url: str, account: BaseAccount, zksync_contract_address: str):
        w3 = Web3(HTTPProvider(endpoint_uri=web3_url))
        zksync = ZkSync(web3=w3, zksync_contract_address=zksync_contract_address, account=account)
        return cls(w3, zksync)

    @property
    def account(self) -> BaseAccount:
        return self.zksync.account

    def address(self) -> str:
        return self.zksync.account.address

    async def _run(self, func, *args, **kwargs):
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except Exception as ex:
            raise EthereumError(str(ex)) from ex

    async def _send(self, func, *args, **kwargs):
        async with self._send_lock:
            return await self._run(func, *args, **kwargs)

    async def balance(self) -> int:
        return await self._run(self.web3.eth.get_balance, self.address())

    async def erc20_balance(self, token: Token) -> int:
        contract = self.web3.eth.contract(token.address, abi=erc20_abi())  # type: ignore[call-overload]
        return await self._run(contract.functions.balanceOf(self.address()).call)

    async def deposit_amount(self, token: Token, amount: int, address: str):
        if token.is_eth():
            receipt = await self._send(self.zksync.deposit_eth, address, amount)
        else:
            receipt = await self._send(self.zksync.deposit_erc20, token.address, address, amount)
        logger.debug("Deposit of %d %s to %s mined in %s", amount, token.symbol, address,
                     receipt['transactionHash'].hex())
        return receipt

    async def full_exit(self, token: Token, account_id: int):
        receipt = await self._send(self.zksync.full_exit, account_id, token.address)
        logger.debug("Full exit for account %d mined in %s", account_id, receipt['transactionHash'].hex())
        return receipt

    async def approve_erc20_token_deposits(self, token: Token):
        contract = ERC20Contract(self.web3, self.zksync.contract_address, token.address, self.account)
        return await self._send(contract.approve_deposit)

    async def transfer(self, token: Token, amount: int, to: str):
        to = Web3.toChecksumAddress(to)
        if token.is_eth():
            return await self._send(self._transfer_eth, amount, to)
        contract = ERC20Contract(self.web3, self.zksync.contract_address, token.address, self.account)
        return await self._send(contract._call_method, 'transfer', to, amount)

    async def wait_for_tx(self, tx_hash):
        return await self._run(self.web3.eth.wait_for_transaction_receipt, tx_hash)

    def _transfer_eth(self, amount: int, to: str):
        transaction = {
            'from':     self.address(),
            'to':       to,
            'value':    amount,
            'gas':      ETH_TRANSFER_GAS,
            'gasPrice': self.web3.eth.gas_price,
            'nonce':    self.web3.eth.get_transaction_count(self.address(), 'pending'),
            'chainId':  self.web3.eth.chain_id,
        }
        signed_tx = self.account.sign_transaction(transaction)
        tx_hash = self.web3.eth.send_raw_transaction(signed_tx.rawTransaction)
        logger.debug("Sent %d wei to %s in %s", amount, to, tx_hash.hex())
        return self.web3.eth.wait_for_transaction_receipt(tx_hash)
