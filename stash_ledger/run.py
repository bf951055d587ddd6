import csv
from typing import Optional

import fire
from pydantic import ValidationError

from stash_ledger.carry_over import reconcile
from stash_ledger.config import create_conf
from stash_ledger.errors import CorruptLedger
from stash_ledger.merkle import build_snapshot, verify_ledger
from stash_ledger.models import LedgerSnapshot, LedgerStore, RunConfig
from stash_ledger.queries.stash import ClaimStatusOracle, StashOracle
from stash_ledger.rewards import aggregate_rewards


def read_rows(path: str) -> list[dict[str, str]]:
    """Rows of an `address,amount` csv with a header line"""
    with open(path, "r", newline="") as f:
        return list(csv.DictReader(f, delimiter=","))


def run_distribution(
    config: RunConfig,
    rows: list[dict[str, str]],
    oracle: Optional[ClaimStatusOracle] = None,
) -> LedgerSnapshot:
    """
    Regenerate the claims ledger of `config.token`.
    Nothing is written unless every step before the save succeeds.
    """
    store = LedgerStore(config)
    previous = store.load()
    print(
        f"📖 Loaded {config.symbol} ledger dated {previous.date} with {len(previous.claims)} claims"
    )

    # parse the new rewards before touching the chain, bad rows fail fast
    rewards = aggregate_rewards(rows)

    if not previous.is_empty and oracle is None:
        oracle = StashOracle()

    carry_over = reconcile(previous, rewards, oracle)  # type: ignore
    if not previous.is_empty:
        print(
            f"♻️  Carried over {len(carry_over.carried)} unclaimed rewards "
            f"({sum(carry_over.carried.values())} wei), "
            f"dropped {len(carry_over.dropped)} claimed ({sum(carry_over.dropped.values())} wei)"
        )

    snapshot = build_snapshot(config.symbol, config.token, config.date, carry_over.rewards)
    archive = store.save(snapshot, previous)

    if archive:
        print(f"🗄️  Archived previous ledger to {archive}")
    print(f"🌳 {len(snapshot.claims)} claims, total {snapshot.total}")
    print(f"🌳 Merkle root: {snapshot.merkleRoot}")
    print(f"🚀🚀🚀 Successfully wrote {store.latest_path}")
    return snapshot


def main(
    symbol: str,
    address: str,
    csv: str,
    merkle_dir: str = "merkles",
    date: Optional[str] = None,
) -> None:
    # fire parses unquoted 0x... arguments as python int literals
    if isinstance(address, int):
        address = f"0x{address:040x}"
    config = create_conf(str(symbol), address, date=date, merkle_dir=merkle_dir)
    run_distribution(config, read_rows(csv))


def verify(path: str) -> None:
    """Check every proof in a ledger file against its merkle root"""
    try:
        with open(path, "r") as f:
            snapshot = LedgerSnapshot.model_validate_json(f.read())
    except ValidationError as e:
        raise CorruptLedger(f"Could not parse {path}: {e}")

    invalid = verify_ledger(snapshot)
    if invalid:
        raise CorruptLedger(f"{len(invalid)} proofs in {path} do not match the root: {invalid}")
    print(f"✅ All {len(snapshot.claims)} proofs in {path} match {snapshot.merkleRoot}")


def cli() -> None:
    fire.Fire({"run": main, "verify": verify})


if __name__ == "__main__":
    cli()
