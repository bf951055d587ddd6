from dataclasses import dataclass, field

import pytest

from stash_ledger.config import create_conf
from stash_ledger.models import RunConfig
from stash_ledger.queries.stash import WORD_SIZE, ZERO_ROOT, compute_slot

# checksummed token used as the reward token in tests
TOKEN = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"

# digit only addresses have no letters, so the checksummed form is the input
_addresses = [
    "0x1111111111111111111111111111111111111111",
    "0x2222222222222222222222222222222222222222",
    "0x3333333333333333333333333333333333333333",
    "0x4444444444444444444444444444444444444444",
    "0x5555555555555555555555555555555555555555",
]


@pytest.fixture()
def ADDRESSES():
    return _addresses


@pytest.fixture
def config(tmp_path) -> RunConfig:
    return create_conf("TEST", TOKEN, date="20240101", merkle_dir=str(tmp_path))


@dataclass
class MockStash:
    """
    In memory stand in for the MultiMerkleStash.
    Bitmap words live at the same storage keys the contract would use.
    """

    root: bytes = ZERO_ROOT
    update: int = 1
    storage: dict[bytes, int] = field(default_factory=dict)
    reads: list[bytes] = field(default_factory=list)
    root_calls: int = 0

    def set_claimed(self, token: str, update: int, indices: list[int]) -> None:
        for index in indices:
            word, bit = divmod(index, WORD_SIZE)
            slot = compute_slot(token, update, word)
            self.storage[slot] = self.storage.get(slot, 0) | (1 << bit)

    def current_root(self, token: str) -> bytes:
        self.root_calls += 1
        return self.root

    def update_counter(self, token: str) -> int:
        return self.update

    def read_word(self, slot: bytes) -> int:
        self.reads.append(slot)
        return self.storage.get(slot, 0)


@pytest.fixture
def stash() -> MockStash:
    return MockStash()
