from typing import Literal

# type aliases for clarity
EthereumAddress = str
BigNumber = str
HexHash = str

# merkle root recorded for a ledger that has never been committed, or has no claims
EMPTY_ROOT: Literal[""] = ""
