import logging
from enum import Enum
from typing import Optional

from eth_account import Account

from zksync_sdk.ethereum_signer import EthereumSignerWeb3
from zksync_sdk.serializers import closest_packable_transaction_fee
from zksync_sdk.types import (ChangePubKeyEcdsa, Token, TokenLike, TransactionWithOptionalSignature)
from zksync_sdk.types.transactions import DEFAULT_TOKEN_ADDRESS
from zksync_sdk.wallet import TokenNotFoundError, Wallet
from zksync_sdk.zksync_provider import FeeTxType
from zksync_sdk.zksync_provider.transaction import Transaction
from zksync_sdk.zksync_signer import ZkSyncSigner
from zksync_loadtest.config import AccountInfo
from zksync_loadtest.error import UnknownTokenError
from zksync_loadtest.ethereum import LoadtestEthereumProvider
from zksync_loadtest.monitor import Monitor, PriorityOp
from zksync_loadtest.nonce import AtomicNonce
from zksync_loadtest.session import save_wallet

__all__ = ['TestWallet', 'BlockStatus', 'is_eth_token']

logger = logging.getLogger(__name__)


class BlockStatus(Enum):
    committed = "committed"
    verified = "verified"


def is_eth_token(token: TokenLike) -> bool:
    """
    ETH is token id 0, the "ETH" symbol or the zero address, both case-insensitive.
    """
    if isinstance(token, int):
        return token == 0
    return token.upper() == "ETH" or token.lower() == DEFAULT_TOKEN_ADDRESS


class TestWallet:
    """
    A wrapper over `zksync_sdk.Wallet` to make load testing more convenient.

    The wallet works with a single token and keeps its own nonce counter, so transactions can be
    signed concurrently without asking the network for the nonce each time.
    Amounts and fees are integers in the lowest token denominations (wei, satoshi, etc.)
    """

    FEE_FACTOR = 3

    def __init__(self, monitor: Monitor, eth_provider: LoadtestEthereumProvider, inner: Wallet,
                 token_name: TokenLike, nonce: int):
        self.monitor = monitor
        self.eth_provider = eth_provider
        self.inner = inner
        self.token_name = token_name
        self._nonce = AtomicNonce(nonce)

    @classmethod
    async def from_info(cls, monitor: Monitor, info: AccountInfo, web3_url: str):
        """
        Creates a new wallet from the given account information and Ethereum node address.
        """
        account = Account.from_key(info.private_key)
        contract_address = await monitor.provider.get_contract_address()
        eth_provider = LoadtestEthereumProvider.from_account(web3_url, account, contract_address.main_contract)
        zk_signer = ZkSyncSigner.from_account(account, monitor.library, monitor.chain_id)
        inner = Wallet(ethereum_provider=eth_provider, zk_signer=zk_signer,
                       eth_signer=EthereumSignerWeb3(account=account), provider=monitor.provider)

        wallet = await cls.from_wallet(info.token_name, monitor, inner)
        save_wallet(info)
        return wallet

    @classmethod
    async def new_random(cls, token_name: TokenLike, monitor: Monitor, web3_url: str):
        account = Account.create()
        info = AccountInfo(address=account.address, private_key=account.key.hex(), token_name=token_name)
        return await cls.from_info(monitor, info, web3_url)

    @classmethod
    async def from_wallet(cls, token_name: TokenLike, monitor: Monitor, inner: Wallet):
        state = await monitor.provider.get_state(inner.address())
        if isinstance(state.id, int):
            inner.account_id = state.id

        wallet = cls(monitor, inner.ethereum_provider, inner, token_name, state.get_nonce())
        await monitor.api_data_pool.store_address(wallet.address())
        if inner.account_id is not None:
            await monitor.api_data_pool.set_account_id(wallet.address(), inner.account_id)
        return wallet

    async def refresh_nonce(self):
        """
        Sets the committed nonce from the zkSync network, fixing further "nonce mismatch" errors.
        """
        state = await self.monitor.provider.get_state(self.address())
        nonce = state.get_nonce()
        self._nonce.store(nonce)
        logger.debug("Nonce of %s refreshed to %d", self.address(), nonce)

    def pending_nonce(self) -> int:
        """
        Returns the nonce for a new transaction and increments the counter.
        """
        return self._nonce.fetch_add(1)

    def address(self) -> str:
        return self.inner.address()

    def account_id(self) -> Optional[int]:
        return self.inner.account_id

    async def update_account_id(self):
        state = await self.monitor.provider.get_state(self.address())
        if isinstance(state.id, int):
            self.inner.account_id = state.id
            await self.monitor.api_data_pool.set_account_id(self.address(), state.id)

    async def sufficient_fee(self) -> int:
        """
        Returns a fee sufficient to process each kind of transactions in zkSync network.
        """
        fee = await self.monitor.provider.get_transaction_fee(FeeTxType.fast_withdraw,
                                                              DEFAULT_TOKEN_ADDRESS,
                                                              self.token_name)
        sufficient_fee = closest_packable_transaction_fee(fee.total_fee * self.FEE_FACTOR)
        if sufficient_fee == 0:
            logger.warning("Sufficient fee for %s rounded down to zero", self.token_name)
        return sufficient_fee

    async def resolve_token(self, token: Optional[TokenLike] = None) -> Token:
        if token is None:
            token = self.token_name
        try:
            return await self.inner.resolve_token(token)
        except TokenNotFoundError as ex:
            raise UnknownTokenError(token) from ex

    async def balance(self, block_status: BlockStatus = BlockStatus.committed) -> int:
        """
        Returns the wallet balance in zkSync network.
        """
        try:
            return await self.inner.get_balance(self.token_name, block_status.value)
        except TokenNotFoundError as ex:
            raise UnknownTokenError(self.token_name) from ex

    async def eth_balance(self) -> int:
        return await self.eth_provider.balance()

    async def erc20_balance(self) -> int:
        token = await self.resolve_token()
        return await self.eth_provider.erc20_balance(token)

    async def l1_balance(self) -> int:
        """
        Returns the ETH balance if the wallet token is ETH, otherwise the ERC20 token balance.
        """
        if is_eth_token(self.token_name):
            return await self.eth_balance()
        return await self.erc20_balance()

    async def sign_change_pubkey(self, fee: int) -> TransactionWithOptionalSignature:
        token = await self.resolve_token()
        # ECDSA auth data is part of the transaction itself
        tx, _ = await self.inner.build_change_pub_key(token, ChangePubKeyEcdsa(), fee, self.pending_nonce())
        return TransactionWithOptionalSignature(tx, None)

    async def sign_withdraw(self, amount: int, fee: int) -> TransactionWithOptionalSignature:
        token = await self.resolve_token()
        tx, eth_signature = await self.inner.build_withdraw(self.address(), amount, token, fee,
                                                            self.pending_nonce())
        return TransactionWithOptionalSignature(tx, eth_signature)

    async def sign_transfer(self, to: str, amount: int, fee: int) -> TransactionWithOptionalSignature:
        token = await self.resolve_token()
        tx, eth_signature = await self.inner.build_transfer(to, amount, token, fee, self.pending_nonce())
        return TransactionWithOptionalSignature(tx, eth_signature)

    async def submit(self, signed: TransactionWithOptionalSignature) -> Transaction:
        return await self.inner.send_signed_transaction(signed.tx, signed.signature)

    async def deposit(self, amount: int) -> PriorityOp:
        """
        Deposits tokens from Ethereum to the zkSync contract.
        """
        token = await self.resolve_token()
        receipt = await self.eth_provider.deposit_amount(token, amount, self.address())
        return self.monitor.get_priority_op(self.eth_provider, receipt)

    async def full_exit(self) -> PriorityOp:
        account_id = self.account_id()
        if account_id is None:
            raise RuntimeError("An attempt to perform full exit on a wallet without account_id")
        token = await self.resolve_token()
        receipt = await self.eth_provider.full_exit(token, account_id)
        return self.monitor.get_priority_op(self.eth_provider, receipt)

    async def approve_erc20_deposits(self):
        """
        Sends a transaction to the ERC20 token contract to approve deposits, returns its receipt.
        """
        token = await self.resolve_token()
        return await self.eth_provider.approve_erc20_token_deposits(token)

    async def transfer_to(self, token: TokenLike, amount: int, to: str):
        """
        Sends some amount of tokens to the given address in the Ethereum network, returns the receipt.
        """
        token_obj = await self.resolve_token(token)
        return await self.eth_provider.transfer(token_obj, amount, to)

    def into_inner(self) -> Wallet:
        return self.inner
