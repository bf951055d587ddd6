from typing import NamedTuple

from eth_abi.packed import encode_packed
from eth_utils import encode_hex, keccak, to_bytes

from stash_ledger.address import address_sort_key
from stash_ledger.errors import InvalidAmount
from stash_ledger.models import (
    EMPTY_ROOT,
    ClaimEntry,
    EthereumAddress,
    HexHash,
    LedgerSnapshot,
)
from stash_ledger.rewards import RewardPool, pool_total

MAX_UINT256 = 2**256 - 1


def hash_pair(a: bytes, b: bytes) -> bytes:
    """Parent of two sibling nodes, hashed smallest first"""
    return keccak(min(a, b) + max(a, b))


def parent_layer(layer: list[bytes]) -> list[bytes]:
    parents = [hash_pair(layer[i], layer[i + 1]) for i in range(0, len(layer) - 1, 2)]
    if len(layer) % 2 == 1:
        # the unpaired last node moves up unchanged
        parents.append(layer[-1])
    return parents


class MerkleTree:
    """
    Sorted merkle tree as verified by OpenZeppelin's MerkleProof:
    leaves are sorted, and each pair of siblings is sorted before hashing.
    """

    def __init__(self, leaves: list[bytes]):
        self.leaves = sorted(set(leaves))
        if not self.leaves:
            raise ValueError("Cannot build a merkle tree without leaves")
        self.positions = {leaf: i for i, leaf in enumerate(self.leaves)}

        self.layers = [self.leaves]
        while len(self.layers[-1]) > 1:
            self.layers.append(parent_layer(self.layers[-1]))

    @property
    def root(self) -> bytes:
        return self.layers[-1][0]

    def proof(self, leaf: bytes) -> list[bytes]:
        """Siblings from the leaf up to the root, skipping layers where the node was promoted"""
        position = self.positions[leaf]
        siblings = []
        for layer in self.layers[:-1]:
            sibling = position ^ 1
            if sibling < len(layer):
                siblings.append(layer[sibling])
            position >>= 1
        return siblings


def leaf_hash(index: int, address: EthereumAddress, amount: int) -> bytes:
    """keccak256(abi.encodePacked(uint256 index, address account, uint256 amount))"""
    if not 0 <= amount <= MAX_UINT256:
        raise InvalidAmount(f"Amount {amount} for {address} does not fit in a uint256")
    return keccak(encode_packed(["uint256", "address", "uint256"], [index, address, amount]))


def verify_proof(leaf: bytes, proof: list[bytes], root: bytes) -> bool:
    node = leaf
    for sibling in proof:
        node = hash_pair(node, sibling)
    return node == root


def order_addresses(rewards: RewardPool) -> list[EthereumAddress]:
    """Claim indices follow ascending order of the raw address bytes"""
    return sorted(rewards, key=address_sort_key)


class Commitment(NamedTuple):
    merkleRoot: HexHash
    total: int
    claims: dict[EthereumAddress, ClaimEntry]


def build_claims(rewards: RewardPool) -> Commitment:
    """
    Assign indices to the reward pool and build the tree.
    An empty pool has no tree, its root is the empty string.
    """
    addresses = order_addresses(rewards)
    if not addresses:
        return Commitment(EMPTY_ROOT, 0, {})

    leaves = [
        leaf_hash(index, address, rewards[address])
        for index, address in enumerate(addresses)
    ]
    tree = MerkleTree(leaves)

    claims = {
        address: ClaimEntry(
            index=index,
            amount=str(rewards[address]),
            proof=[encode_hex(p) for p in tree.proof(leaves[index])],
        )
        for index, address in enumerate(addresses)
    }
    return Commitment(encode_hex(tree.root), pool_total(rewards), claims)


def build_snapshot(
    symbol: str, token: EthereumAddress, date: str, rewards: RewardPool
) -> LedgerSnapshot:
    commitment = build_claims(rewards)
    return LedgerSnapshot(
        symbol=symbol,
        address=token,
        date=date,
        merkleRoot=commitment.merkleRoot,
        total=str(commitment.total),
        claims=commitment.claims,
    )


def verify_ledger(snapshot: LedgerSnapshot) -> list[EthereumAddress]:
    """Return the addresses whose proof does not lead to the ledger's merkle root"""
    if snapshot.merkleRoot == EMPTY_ROOT:
        return list(snapshot.claims)

    root = to_bytes(hexstr=snapshot.merkleRoot)
    return [
        address
        for address, claim in snapshot.claims.items()
        if not verify_proof(
            leaf_hash(claim.index, address, claim.value),
            [to_bytes(hexstr=p) for p in claim.proof],
            root,
        )
    ]
