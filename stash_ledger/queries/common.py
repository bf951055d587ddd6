from functools import lru_cache

from web3 import Web3

from stash_ledger.env import rpc_url


@lru_cache(maxsize=None)
def get_w3() -> Web3:
    """Web3 client for the RPC in the environment, created on first use"""
    return Web3(Web3.HTTPProvider(rpc_url()))
