import os
from typing import Optional

from dotenv import load_dotenv

from stash_ledger.errors import MissingEnvironmentVariableException

load_dotenv()


def env_var(accessor: str, default: Optional[str] = None) -> str:
    """
    Attempt to fetch an environment variable and throw
    an error if not found and no default is given
    """
    var = os.environ.get(accessor, default)
    if not var:
        raise MissingEnvironmentVariableException(accessor)
    return var


class ADDRESSES:
    # MultiMerkleStash deployment holding roots and claimed bitmaps
    DEFAULT_STASH = "0xaBC6A4e345801Cb5f57629E79Cd5Eb2e9e514e98"

    @staticmethod
    def stash() -> str:
        return env_var("STASH_ADDRESS", ADDRESSES.DEFAULT_STASH)


def rpc_url() -> str:
    return env_var("RPC_URL")
