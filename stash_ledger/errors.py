class InvalidAddress(ValueError):
    """Raise if a string is not a valid 20 byte hex ethereum address"""

    pass


class InvalidAmount(ValueError):
    """Raise if a reward amount is not a non-negative integer that fits in a uint256"""

    pass


class DistributionActive(Exception):
    """
    Raise if the stash still holds a merkle root for the token.
    The distribution must be paused (root set to zero) before the ledger is regenerated.
    """

    pass


class CorruptLedger(Exception):
    """Raise if an existing ledger file cannot be parsed into a LedgerSnapshot"""

    pass


class ArchiveCollision(Exception):
    """Raise if archiving the previous ledger would overwrite an existing archive"""

    pass


class BadConfigException(Exception):
    pass


class MissingEnvironmentVariableException(Exception):
    pass
