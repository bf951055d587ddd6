import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from stash_ledger.errors import ArchiveCollision, CorruptLedger
from stash_ledger.models.Config import RunConfig
from stash_ledger.models.Ledger import LedgerSnapshot


@dataclass
class LedgerStore:
    """
    Reads and writes the ledgers of one token under `<merkle_dir>/<symbol>/`.
    `latest.json` is the current ledger, `<YYYYMMDD>.json` are the archived ones.
    """

    config: RunConfig

    @property
    def path(self) -> str:
        return self.config.ledger_dir

    @property
    def latest_path(self) -> str:
        return f"{self.path}/latest.json"

    def archive_path(self, date: str) -> str:
        return f"{self.path}/{date}.json"

    @staticmethod
    def serialize(snapshot: LedgerSnapshot) -> str:
        return json.dumps(snapshot.model_dump(), indent=4)

    def _create_dir(self) -> None:
        Path(self.path).mkdir(parents=True, exist_ok=True)

    def _sync_dir(self) -> None:
        # renames are only durable once the directory entry is flushed
        if os.name != "posix":
            return
        fd = os.open(self.path, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)

    @staticmethod
    def file_mode() -> int:
        """Permissions a plain `open(path, "w")` would give under the current umask"""
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask

    def exists(self) -> bool:
        return os.path.exists(self.latest_path)

    def load(self) -> LedgerSnapshot:
        """
        Return the ledger in `latest.json`, or a genesis ledger dated today if there is none.
        """
        if not self.exists():
            return LedgerSnapshot.genesis(
                self.config.symbol, self.config.token, self.config.date
            )

        try:
            with open(self.latest_path, "r") as f:
                snapshot = LedgerSnapshot.model_validate_json(f.read())
        except (ValidationError, UnicodeDecodeError) as e:
            raise CorruptLedger(f"Could not parse {self.latest_path}: {e}")
        except OSError as e:
            raise CorruptLedger(f"Could not read {self.latest_path}: {e}")

        if snapshot.address != self.config.token:
            raise CorruptLedger(
                f"{self.latest_path} belongs to token {snapshot.address}, not {self.config.token}"
            )
        return snapshot

    def save(
        self, snapshot: LedgerSnapshot, previous: LedgerSnapshot
    ) -> Optional[str]:
        """
        Write `snapshot` as the latest ledger.
        If the date changed since `previous`, the old `latest.json` is first moved to
        `<previous.date>.json`, which must not already exist.
        Returns the archive path if one was created.
        """
        self._create_dir()

        archive = None
        if previous.date != snapshot.date and self.exists():
            archive = self.archive_path(previous.date)
            if os.path.exists(archive):
                raise ArchiveCollision(f"Refusing to overwrite archived ledger {archive}")

        # the new ledger is fully on disk before anything is renamed
        fd, tmp_path = tempfile.mkstemp(dir=self.path, prefix=".latest-", suffix=".tmp")
        archived = False
        try:
            with os.fdopen(fd, "w") as f:
                f.write(self.serialize(snapshot))
                f.flush()
                os.fsync(f.fileno())
            # mkstemp creates 0600, the ledgers are read by other users
            os.chmod(tmp_path, self.file_mode())
            if archive:
                os.rename(self.latest_path, archive)
                archived = True
            os.replace(tmp_path, self.latest_path)
            self._sync_dir()
        except BaseException:
            if archived and not self.exists():
                os.rename(archive, self.latest_path)
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        return archive
