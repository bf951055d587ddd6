from __future__ import annotations

import re

from pydantic import BaseModel, field_validator, model_validator

from stash_ledger.address import normalize_address
from stash_ledger.models.types import EMPTY_ROOT, BigNumber, EthereumAddress, HexHash

DATE_FORMAT = re.compile(r"^\d{8}$")
HASH_FORMAT = re.compile(r"^0x[0-9a-fA-F]{64}$")


def is_decimal_string(value: str) -> bool:
    return value.isascii() and value.isdigit()


class ClaimEntry(BaseModel):
    """
    A single recipient's claim in the stash
    :param `index`: position of the claim in the claimed bitmap, unique within a ledger
    :param `amount`: token amount in wei, as a decimal string
    :param `proof`: sibling hashes from the leaf up to the root
    """

    index: int
    amount: BigNumber
    proof: list[HexHash]

    @field_validator("index")
    @classmethod
    def non_negative_index(cls, index: int) -> int:
        if index < 0:
            raise ValueError(f"Negative claim index {index}")
        return index

    @field_validator("amount")
    @classmethod
    def decimal_amount(cls, amount: str) -> str:
        if not is_decimal_string(amount):
            raise ValueError(f"Amount is not a non-negative integer: {amount!r}")
        return amount

    @field_validator("proof")
    @classmethod
    def hex_hashes(cls, proof: list[str]) -> list[str]:
        for node in proof:
            if not HASH_FORMAT.match(node):
                raise ValueError(f"Proof element is not a 32 byte hash: {node!r}")
        return proof

    @property
    def value(self) -> int:
        return int(self.amount)


class LedgerSnapshot(BaseModel):
    """
    The full claim table for one distribution cycle of a token, as stored in `latest.json`.
    Field names are what the stash front end and any verifier read, so they must not change.
    """

    symbol: str
    address: EthereumAddress
    date: str
    merkleRoot: HexHash
    total: BigNumber
    claims: dict[EthereumAddress, ClaimEntry]

    @field_validator("address")
    @classmethod
    def checksum_token(cls, address: str) -> str:
        return normalize_address(address)

    @field_validator("date")
    @classmethod
    def yyyymmdd(cls, date: str) -> str:
        if not DATE_FORMAT.match(date):
            raise ValueError(f"Date must be formatted as YYYYMMDD, got {date!r}")
        return date

    @field_validator("total")
    @classmethod
    def decimal_total(cls, total: str) -> str:
        if not is_decimal_string(total):
            raise ValueError(f"Total is not a non-negative integer: {total!r}")
        return total

    @field_validator("claims")
    @classmethod
    def checksum_claims(cls, claims: dict[str, ClaimEntry]) -> dict[str, ClaimEntry]:
        checksummed = {normalize_address(a): c for a, c in claims.items()}
        if len(checksummed) != len(claims):
            raise ValueError("Claims contain the same address more than once")
        return checksummed

    @model_validator(mode="after")
    def consistent(self) -> LedgerSnapshot:
        indices = sorted(c.index for c in self.claims.values())
        if indices != list(range(len(self.claims))):
            raise ValueError("Claim indices are not exactly 0..N-1")

        if sum(c.value for c in self.claims.values()) != int(self.total):
            raise ValueError(
                f"Total {self.total} does not match the sum of claim amounts"
            )

        if not self.claims and self.merkleRoot != EMPTY_ROOT:
            raise ValueError("A ledger without claims cannot have a merkle root")
        if self.merkleRoot != EMPTY_ROOT and not HASH_FORMAT.match(self.merkleRoot):
            raise ValueError(f"Merkle root is not a 32 byte hash: {self.merkleRoot!r}")
        return self

    @property
    def is_empty(self) -> bool:
        return len(self.claims) == 0

    @staticmethod
    def genesis(symbol: str, token: EthereumAddress, date: str) -> LedgerSnapshot:
        """A ledger for a token that has never been distributed"""
        return LedgerSnapshot(
            symbol=symbol,
            address=token,
            date=date,
            merkleRoot=EMPTY_ROOT,
            total="0",
            claims={},
        )
