import datetime
from typing import Optional

from stash_ledger.models import RunConfig


def today() -> str:
    """Current UTC date as YYYYMMDD"""
    return datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%d")


def create_conf(
    symbol: str,
    token: str,
    date: Optional[str] = None,
    merkle_dir: str = "merkles",
) -> RunConfig:
    """Generates the run config from command line input, dated today unless overridden"""
    return RunConfig(
        symbol=symbol,
        token=token,
        date=str(date) if date else today(),
        merkle_dir=merkle_dir,
    )
