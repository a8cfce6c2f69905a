import json
import logging
import threading
from typing import List

from zksync_loadtest.config import AccountInfo

__all__ = ['save_wallet', 'saved_wallets', 'dump_wallets', 'load_wallets', 'reset_session']

logger = logging.getLogger(__name__)

_session_wallets: List[AccountInfo] = []
_session_lock = threading.Lock()


def save_wallet(info: AccountInfo):
    with _session_lock:
        _session_wallets.append(info.copy())


def saved_wallets() -> List[AccountInfo]:
    with _session_lock:
        return list(_session_wallets)


def reset_session():
    with _session_lock:
        _session_wallets.clear()


def dump_wallets(path: str):
    """
    Writes every wallet created in this session to `path`, so that funds left on
    generated accounts can be recovered after the run.
    """
    data = [info.dict(by_alias=True) for info in saved_wallets()]
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    logger.info("Saved %d wallets to %s", len(data), path)


def load_wallets(path: str) -> List[AccountInfo]:
    with open(path) as f:
        data = json.load(f)
    return [AccountInfo(**item) for item in data]
