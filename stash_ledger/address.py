import eth_utils as eth

from stash_ledger.errors import InvalidAddress


def normalize_address(address: str) -> str:
    """
    Return the checksummed form of `address`, whatever its casing.
    Every address used as a dictionary key goes through here first so that
    case variants of the same account collapse into one ledger entry.
    """
    if not isinstance(address, str):
        raise InvalidAddress(f"Address must be a string, got {address!r}")
    address = address.strip()
    # casing is not checked, only the length and charset
    if not eth.is_hex_address(address):
        raise InvalidAddress(f"Invalid ethereum address: {address!r}")
    return eth.to_checksum_address(address)


def address_sort_key(address: str) -> bytes:
    """Sort key over the 20 raw address bytes, used for claim index assignment"""
    return eth.to_canonical_address(address)
