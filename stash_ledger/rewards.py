from typing import Iterable, Mapping, Optional

from stash_ledger.address import normalize_address
from stash_ledger.errors import InvalidAmount
from stash_ledger.models.types import EthereumAddress

RewardPool = dict[EthereumAddress, int]


def parse_amount(amount: Optional[str]) -> int:
    """Parse a decimal string of wei into an int, rejecting signs, decimals and hex"""
    if amount is None:
        raise InvalidAmount("Missing amount")
    text = str(amount).strip()
    if not (text.isascii() and text.isdigit()):
        raise InvalidAmount(f"Amount is not a non-negative integer: {amount!r}")
    return int(text)


def aggregate_rewards(rows: Iterable[Mapping[str, str]]) -> RewardPool:
    """
    Fold raw `{address, amount}` rows into a reward pool.
    Addresses are checksummed and repeated addresses have their amounts summed.
    Any malformed row raises, so a partial pool is never returned.
    """
    rewards: RewardPool = {}
    for row in rows:
        address = normalize_address(row.get("address"))
        amount = parse_amount(row.get("amount"))
        rewards[address] = rewards.get(address, 0) + amount
    return rewards


def add_reward(rewards: RewardPool, address: EthereumAddress, amount: int) -> None:
    if amount < 0:
        raise InvalidAmount(f"Cannot add a negative amount {amount} to {address}")
    address = normalize_address(address)
    rewards[address] = rewards.get(address, 0) + amount


def pool_total(rewards: RewardPool) -> int:
    return sum(rewards.values())
