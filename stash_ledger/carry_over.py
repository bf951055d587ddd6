from typing import NamedTuple

from stash_ledger.errors import CorruptLedger, DistributionActive
from stash_ledger.models import EthereumAddress, LedgerSnapshot
from stash_ledger.queries.stash import (
    WORD_SIZE,
    ZERO_ROOT,
    ClaimStatusOracle,
    compute_slot,
)
from stash_ledger.rewards import RewardPool, add_reward


class CarryOver(NamedTuple):
    """
    :param `rewards`: the new reward pool including unclaimed amounts from the previous ledger
    :param `carried`: previous claims that were not withdrawn and moved into `rewards`
    :param `dropped`: previous claims already withdrawn, excluded from `rewards`
    """

    rewards: RewardPool
    carried: dict[EthereumAddress, int]
    dropped: dict[EthereumAddress, int]


def check_paused(oracle: ClaimStatusOracle, token: EthereumAddress) -> None:
    """The stash must have a zero root for the token before the claims can be rewritten"""
    root = bytes(oracle.current_root(token))
    if root != ZERO_ROOT:
        raise DistributionActive(
            f"MultiMerkleStash not paused for {token}: root is 0x{root.hex()}"
        )


def fetch_bitmap(
    oracle: ClaimStatusOracle, token: EthereumAddress, update: int, n_claims: int
) -> list[int]:
    """Read every bitmap word covering claim indices [0, n_claims)"""
    n_words = (n_claims + WORD_SIZE - 1) // WORD_SIZE
    return [
        oracle.read_word(compute_slot(token, update, word)) for word in range(n_words)
    ]


def is_claimed(bitmap: list[int], index: int) -> bool:
    word, bit = divmod(index, WORD_SIZE)
    return (bitmap[word] >> bit) & 1 == 1


def reconcile(
    previous: LedgerSnapshot, rewards: RewardPool, oracle: ClaimStatusOracle
) -> CarryOver:
    """
    Add every claim of `previous` that has not been withdrawn from the stash into a copy of `rewards`.

    The bitmap read is the one for `update - 1`: the stash bumps its update counter when a
    root is set, so the claims in `previous` were recorded against the prior counter.
    A genesis ledger has nothing to carry and the stash is not queried at all.
    """
    new_rewards = dict(rewards)
    carried: dict[EthereumAddress, int] = {}
    dropped: dict[EthereumAddress, int] = {}

    if previous.is_empty:
        return CarryOver(new_rewards, carried, dropped)

    token = previous.address
    check_paused(oracle, token)

    update = oracle.update_counter(token)
    if update < 1:
        raise CorruptLedger(
            f"Ledger has {len(previous.claims)} claims but the stash was never updated for {token}"
        )

    bitmap = fetch_bitmap(oracle, token, update - 1, len(previous.claims))

    for address, claim in previous.claims.items():
        if is_claimed(bitmap, claim.index):
            dropped[address] = claim.value
        else:
            carried[address] = claim.value
            add_reward(new_rewards, address, claim.value)

    return CarryOver(new_rewards, carried, dropped)
