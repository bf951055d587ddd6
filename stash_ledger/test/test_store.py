import json
import os
import stat

import pytest

from stash_ledger.config import create_conf
from stash_ledger.errors import ArchiveCollision, CorruptLedger
from stash_ledger.merkle import build_snapshot
from stash_ledger.models import EMPTY_ROOT, LedgerStore, RunConfig
from stash_ledger.test.conftest import TOKEN


@pytest.fixture
def store(config: RunConfig) -> LedgerStore:
    return LedgerStore(config)


def _snapshot(config: RunConfig, rewards: dict[str, int], date=None):
    return build_snapshot(config.symbol, config.token, date or config.date, rewards)


def _read(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def test_paths(store, config):
    assert store.path == f"{config.merkle_dir}/TEST"
    assert store.latest_path == f"{config.merkle_dir}/TEST/latest.json"
    assert store.archive_path("20231231") == f"{config.merkle_dir}/TEST/20231231.json"


def test_load_genesis(store, config):
    genesis = store.load()

    assert genesis.symbol == "TEST"
    assert genesis.address == TOKEN
    assert genesis.date == config.date
    assert genesis.merkleRoot == EMPTY_ROOT
    assert genesis.total == "0"
    assert genesis.claims == {}
    # loading never creates anything
    assert not os.path.exists(store.path)


def test_save_and_load(store, config, ADDRESSES):
    snapshot = _snapshot(config, {ADDRESSES[0]: 100, ADDRESSES[1]: 30})

    assert store.save(snapshot, store.load()) is None
    assert store.load() == snapshot

    with open(store.latest_path) as f:
        raw = json.load(f)
    assert raw["address"] == TOKEN
    assert raw["total"] == "130"
    assert raw["claims"][ADDRESSES[0]] == {"index": 0, "amount": "100", "proof": snapshot.claims[ADDRESSES[0]].proof}


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        "{}",
        '{"symbol": "TEST"}',
        json.dumps({"symbol": "TEST", "address": TOKEN, "date": "20240101", "merkleRoot": "", "total": "5", "claims": {}}),
    ],
)
def test_load_corrupt(store, content):
    os.makedirs(store.path)
    with open(store.latest_path, "w") as f:
        f.write(content)

    with pytest.raises(CorruptLedger):
        store.load()


def test_load_other_token(store, config, ADDRESSES):
    other = create_conf(config.symbol, ADDRESSES[4], date=config.date, merkle_dir=config.merkle_dir)
    LedgerStore(other).save(_snapshot(other, {ADDRESSES[0]: 1}), LedgerStore(other).load())

    with pytest.raises(CorruptLedger, match="belongs to token"):
        store.load()


def test_same_date_overwrites(store, config, ADDRESSES):
    first = _snapshot(config, {ADDRESSES[0]: 1})
    store.save(first, store.load())

    second = _snapshot(config, {ADDRESSES[0]: 2})
    assert store.save(second, store.load()) is None

    assert store.load() == second
    assert sorted(os.listdir(store.path)) == ["latest.json"]


def test_date_change_archives(store, config, ADDRESSES):
    first = _snapshot(config, {ADDRESSES[0]: 1})
    store.save(first, store.load())
    written = _read(store.latest_path)

    second = _snapshot(config, {ADDRESSES[0]: 2}, date="20240108")
    archive = store.save(second, store.load())

    assert archive == store.archive_path("20240101")
    assert _read(archive) == written
    assert store.load() == second
    assert sorted(os.listdir(store.path)) == ["20240101.json", "latest.json"]


def test_archive_collision(store, config, ADDRESSES):
    store.save(_snapshot(config, {ADDRESSES[0]: 1}), store.load())
    before = _read(store.latest_path)
    with open(store.archive_path("20240101"), "w") as f:
        f.write("history")

    with pytest.raises(ArchiveCollision):
        store.save(_snapshot(config, {ADDRESSES[0]: 2}, date="20240108"), store.load())

    assert _read(store.latest_path) == before
    assert _read(store.archive_path("20240101")) == b"history"
    assert sorted(os.listdir(store.path)) == ["20240101.json", "latest.json"]


def test_failed_replace_leaves_ledger_intact(store, config, ADDRESSES, monkeypatch):
    store.save(_snapshot(config, {ADDRESSES[0]: 1}), store.load())
    before = _read(store.latest_path)

    def fail(*_):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", fail)

    with pytest.raises(OSError, match="disk full"):
        store.save(_snapshot(config, {ADDRESSES[0]: 2}, date="20240108"), store.load())

    assert _read(store.latest_path) == before
    assert sorted(os.listdir(store.path)) == ["latest.json"]


@pytest.mark.skipif(os.name != "posix", reason="unix permissions")
def test_saved_ledgers_follow_umask(store, config, ADDRESSES):
    old_umask = os.umask(0o022)
    try:
        store.save(_snapshot(config, {ADDRESSES[0]: 1}), store.load())
        archive = store.save(_snapshot(config, {ADDRESSES[0]: 2}, date="20240108"), store.load())
    finally:
        os.umask(old_umask)

    assert stat.S_IMODE(os.stat(store.latest_path).st_mode) == 0o644
    assert stat.S_IMODE(os.stat(archive).st_mode) == 0o644


def test_load_unreadable_ledger(store):
    # a directory where the ledger file should be
    os.makedirs(store.latest_path)

    with pytest.raises(CorruptLedger, match="Could not read"):
        store.load()


@pytest.mark.skipif(os.name != "posix", reason="directory fsync")
def test_save_syncs_file_then_directory(store, config, ADDRESSES, monkeypatch):
    synced = []
    fsync = os.fsync

    def record(fd):
        synced.append(stat.S_ISDIR(os.fstat(fd).st_mode))
        fsync(fd)

    monkeypatch.setattr(os, "fsync", record)

    store.save(_snapshot(config, {ADDRESSES[0]: 1}), store.load())

    assert synced == [False, True]
