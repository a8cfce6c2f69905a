import os
from typing import Optional, Union

from pydantic import BaseModel, StrictInt, StrictStr

from zksync_sdk.network import Network, localhost
from zksync_sdk.types import ChainId
from zksync_sdk.types.responses import to_camel

__all__ = ['AccountInfo', 'LoadtestConfig', 'DEFAULT_WEB3_URL']

DEFAULT_WEB3_URL = "http://localhost:8545"


class AccountInfo(BaseModel):
    address: str
    private_key: str
    token_name: Union[StrictInt, StrictStr]

    class Config:
        alias_generator = to_camel
        allow_population_by_field_name = True


class LoadtestConfig(BaseModel):
    zksync_url: str = localhost.zksync_url
    web3_url: str = DEFAULT_WEB3_URL
    chain_id: ChainId = localhost.chain_id
    library_path: Optional[str] = None

    @classmethod
    def from_env(cls):
        """
        Reads ZKSYNC_URL, WEB3_URL, CHAIN_ID and ZK_SYNC_LIBRARY_PATH, falling back to a local setup.
        """
        values = {}
        if "ZKSYNC_URL" in os.environ:
            values["zksync_url"] = os.environ["ZKSYNC_URL"]
        if "WEB3_URL" in os.environ:
            values["web3_url"] = os.environ["WEB3_URL"]
        if "CHAIN_ID" in os.environ:
            values["chain_id"] = ChainId(int(os.environ["CHAIN_ID"]))
        if "ZK_SYNC_LIBRARY_PATH" in os.environ:
            values["library_path"] = os.environ["ZK_SYNC_LIBRARY_PATH"]
        return cls(**values)

    def network(self) -> Network:
        return Network(zksync_url=self.zksync_url, chain_id=self.chain_id)
