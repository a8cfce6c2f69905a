import asyncio
import time
from unittest import IsolatedAsyncioTestCase, mock

from hexbytes import HexBytes
from web3 import Web3

from zksync_sdk.types import Token
from zksync_loadtest.error import EthereumError
from zksync_loadtest.ethereum import ETH_TRANSFER_GAS, LoadtestEthereumProvider


class TestLoadtestEthereumProvider(IsolatedAsyncioTestCase):
    address = "0x995a8B7f96cb837533B79775B6209696d51f435C"
    receiver = "0x21dDF51966f2A66D03998B0956fe59da1b3a179F"
    usdt = Token(address="0x3B00Ef435fA4FcFF5C209a37d1f3dcff37c705aD", id=2, symbol="USDT", decimals=6)

    def setUp(self):
        self.web3 = mock.MagicMock()
        self.zksync = mock.MagicMock()
        self.zksync.account.address = self.address
        self.zksync.contract_address = "0x82F67958A5474e40E1485742d648C0b0686b6e5D"
        self.receipt = {"transactionHash": HexBytes("0x" + "01" * 32)}
        self.provider = LoadtestEthereumProvider(self.web3, self.zksync)

    async def test_balance(self):
        self.web3.eth.get_balance.return_value = 10 ** 18
        self.assertEqual(await self.provider.balance(), 10 ** 18)
        self.web3.eth.get_balance.assert_called_once_with(self.address)

    async def test_failures_are_wrapped(self):
        self.web3.eth.get_balance.side_effect = ConnectionError("node is down")
        with self.assertRaises(EthereumError) as ctx:
            await self.provider.balance()
        self.assertIsInstance(ctx.exception.__cause__, ConnectionError)

    async def test_erc20_balance(self):
        contract = self.web3.eth.contract.return_value
        contract.functions.balanceOf.return_value.call.return_value = 500
        with mock.patch("zksync_loadtest.ethereum.erc20_abi", return_value=[]):
            balance = await self.provider.erc20_balance(self.usdt)
        self.assertEqual(balance, 500)
        self.web3.eth.contract.assert_called_once_with(self.usdt.address, abi=[])
        contract.functions.balanceOf.assert_called_once_with(self.address)

    async def test_deposit_eth(self):
        self.zksync.deposit_eth.return_value = self.receipt
        receipt = await self.provider.deposit_amount(Token.eth(), 1000, self.address)
        self.assertIs(receipt, self.receipt)
        self.zksync.deposit_eth.assert_called_once_with(self.address, 1000)
        self.zksync.deposit_erc20.assert_not_called()

    async def test_deposit_erc20(self):
        self.zksync.deposit_erc20.return_value = self.receipt
        await self.provider.deposit_amount(self.usdt, 1000, self.address)
        self.zksync.deposit_erc20.assert_called_once_with(self.usdt.address, self.address, 1000)
        self.zksync.deposit_eth.assert_not_called()

    async def test_full_exit(self):
        self.zksync.full_exit.return_value = self.receipt
        receipt = await self.provider.full_exit(self.usdt, 11)
        self.assertIs(receipt, self.receipt)
        self.zksync.full_exit.assert_called_once_with(11, self.usdt.address)

    async def test_transfer_eth(self):
        tx_hash = HexBytes("0x" + "02" * 32)
        self.web3.eth.gas_price = 7
        self.web3.eth.chain_id = 9
        self.web3.eth.get_transaction_count.return_value = 4
        self.web3.eth.send_raw_transaction.return_value = tx_hash
        self.web3.eth.wait_for_transaction_receipt.return_value = self.receipt

        receipt = await self.provider.transfer(Token.eth(), 25, self.receiver)

        self.assertIs(receipt, self.receipt)
        transaction = self.zksync.account.sign_transaction.call_args.args[0]
        self.assertEqual(transaction["value"], 25)
        self.assertEqual(transaction["nonce"], 4)
        self.assertEqual(transaction["gas"], ETH_TRANSFER_GAS)
        self.assertEqual(transaction["to"], Web3.toChecksumAddress(self.receiver))
        self.web3.eth.wait_for_transaction_receipt.assert_called_once_with(tx_hash)

    async def test_transfer_erc20(self):
        with mock.patch("zksync_loadtest.ethereum.ERC20Contract") as contract_cls:
            contract_cls.return_value._call_method.return_value = self.receipt
            receipt = await self.provider.transfer(self.usdt, 25, self.receiver)
        self.assertIs(receipt, self.receipt)
        contract_cls.assert_called_once_with(self.web3, self.zksync.contract_address, self.usdt.address,
                                             self.zksync.account)
        contract_cls.return_value._call_method.assert_called_once_with('transfer', Web3.toChecksumAddress(self.receiver),
                                                                      25)

    async def test_approve_erc20_token_deposits(self):
        with mock.patch("zksync_loadtest.ethereum.ERC20Contract") as contract_cls:
            contract_cls.return_value.approve_deposit.return_value = self.receipt
            receipt = await self.provider.approve_erc20_token_deposits(self.usdt)
        self.assertIs(receipt, self.receipt)
        contract_cls.return_value.approve_deposit.assert_called_once_with()

    async def test_transfer_erc20_to_lowercase_address(self):
        receiver = self.receiver.lower()
        with mock.patch("zksync_loadtest.ethereum.ERC20Contract") as contract_cls:
            contract_cls.return_value._call_method.return_value = self.receipt
            await self.provider.transfer(self.usdt, 25, receiver)
        to = contract_cls.return_value._call_method.call_args.args[1]
        self.assertEqual(to, Web3.toChecksumAddress(receiver))
        self.assertNotEqual(to, receiver)

    async def test_concurrent_transfers_use_distinct_nonces(self):
        sent = []
        signed_nonces = []

        def sign_transaction(transaction):
            signed_nonces.append(transaction["nonce"])
            return mock.Mock(rawTransaction=transaction)

        def send_raw_transaction(raw_transaction):
            time.sleep(0.05)
            sent.append(raw_transaction)
            return HexBytes("0x" + "%064x" % len(sent))

        self.web3.eth.gas_price = 7
        self.web3.eth.chain_id = 9
        self.web3.eth.get_transaction_count.side_effect = lambda *args: len(sent)
        self.web3.eth.send_raw_transaction.side_effect = send_raw_transaction
        self.web3.eth.wait_for_transaction_receipt.return_value = self.receipt
        self.zksync.account.sign_transaction.side_effect = sign_transaction

        await asyncio.gather(*[self.provider.transfer(Token.eth(), 1, self.receiver) for _ in range(3)])

        self.assertEqual(signed_nonces, [0, 1, 2])
        self.assertEqual([tx["nonce"] for tx in sent], [0, 1, 2])

    async def test_concurrent_deposits_run_one_at_a_time(self):
        running = []
        overlaps = []

        def deposit_eth(address, amount):
            overlaps.append(len(running))
            running.append(amount)
            time.sleep(0.02)
            running.remove(amount)
            return self.receipt

        self.zksync.deposit_eth.side_effect = deposit_eth

        await asyncio.gather(*[self.provider.deposit_amount(Token.eth(), amount, self.address)
                               for amount in (1, 2, 3)])

        self.assertEqual(overlaps, [0, 0, 0])
