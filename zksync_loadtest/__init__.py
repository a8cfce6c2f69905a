from .config import AccountInfo, LoadtestConfig
from .ethereum import LoadtestEthereumProvider
from .monitor import Monitor, PriorityOp
from .nonce import AtomicNonce
from .registry import AccountRegistry, ApiDataPool
from .wallet import BlockStatus, TestWallet
