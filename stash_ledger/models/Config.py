import re

from pydantic import BaseModel, field_validator

from stash_ledger.address import normalize_address
from stash_ledger.errors import BadConfigException, InvalidAddress
from stash_ledger.models.types import EthereumAddress


class RunConfig(BaseModel):
    """
    Parameters for a single regeneration of a token's claim ledger
    :param `symbol`: token symbol, also the name of the directory holding its ledgers
    :param `token`: address of the reward token in the stash
    :param `date`: distribution date as YYYYMMDD, used to name the archived ledger
    :param `merkle_dir`: root directory holding one folder per symbol
    """

    symbol: str
    token: EthereumAddress
    date: str
    merkle_dir: str = "merkles"

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, symbol: str) -> str:
        if not re.match(r"^[A-Za-z0-9_\-\.]+$", symbol) or set(symbol) == {"."}:
            raise BadConfigException(f"Symbol cannot be used as a directory: {symbol!r}")
        return symbol

    @field_validator("token")
    @classmethod
    def checksum_token(cls, token: str) -> str:
        try:
            return normalize_address(token)
        except InvalidAddress as e:
            raise BadConfigException(str(e))

    @field_validator("date")
    @classmethod
    def validate_date(cls, date: str) -> str:
        if not re.match(r"^\d{8}$", date):
            raise BadConfigException(f"Date must be formatted as YYYYMMDD, got {date!r}")
        return date

    @property
    def ledger_dir(self) -> str:
        return f"{self.merkle_dir}/{self.symbol}"
