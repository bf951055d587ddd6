from typing import Optional, Protocol

from eth_abi import encode
from eth_utils import keccak
from web3 import Web3

from stash_ledger.env import ADDRESSES
from stash_ledger.models.types import EthereumAddress
from stash_ledger.queries.common import get_w3

# storage slot of `claimedBitMap` in MultiMerkleStash:
# mapping(address token => mapping(uint256 update => mapping(uint256 word => uint256 bits)))
CLAIMED_BITMAP_SLOT = 3

# bits per word in the claimed bitmap
WORD_SIZE = 256

ZERO_ROOT = b"\x00" * 32

# simplified ABI containing just the fragments we want to use
MULTI_MERKLE_STASH_ABI = """
    [{
      "inputs": [{"internalType": "address", "name": "", "type": "address"}],
      "name": "merkleRoot",
      "outputs": [{"internalType": "bytes32", "name": "", "type": "bytes32"}],
      "stateMutability": "view",
      "type": "function"
    },
    {
      "inputs": [{"internalType": "address", "name": "", "type": "address"}],
      "name": "update",
      "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
      "stateMutability": "view",
      "type": "function"
    }]
    """


def compute_slot(token: EthereumAddress, update: int, word_index: int) -> bytes:
    """
    Storage key of `claimedBitMap[token][update][word_index]`.
    Solidity places `mapping[k]` declared at slot `p` at keccak(abi.encode(k, p)),
    nested mappings repeat this with the parent's key as `p`.
    """
    token_slot = keccak(encode(["address", "uint256"], [token, CLAIMED_BITMAP_SLOT]))
    update_slot = keccak(encode(["uint256", "bytes32"], [update, token_slot]))
    return keccak(encode(["uint256", "bytes32"], [word_index, update_slot]))


class ClaimStatusOracle(Protocol):
    """Read only view of the stash state needed to reconcile a previous cycle"""

    def current_root(self, token: EthereumAddress) -> bytes:
        ...

    def update_counter(self, token: EthereumAddress) -> int:
        ...

    def read_word(self, slot: bytes) -> int:
        ...


class StashOracle:
    """ClaimStatusOracle backed by a live MultiMerkleStash over JSON-RPC"""

    def __init__(self, w3: Optional[Web3] = None, stash: Optional[str] = None):
        self.w3 = w3 or get_w3()
        self.address = Web3.to_checksum_address(stash or ADDRESSES.stash())
        self.contract = self.w3.eth.contract(
            address=self.address, abi=MULTI_MERKLE_STASH_ABI  # type: ignore
        )

    def current_root(self, token: EthereumAddress) -> bytes:
        return bytes(self.contract.functions.merkleRoot(token).call())

    def update_counter(self, token: EthereumAddress) -> int:
        return self.contract.functions.update(token).call()

    def read_word(self, slot: bytes) -> int:
        data = self.w3.eth.get_storage_at(self.address, int.from_bytes(slot, "big"))
        return int.from_bytes(data, "big")
