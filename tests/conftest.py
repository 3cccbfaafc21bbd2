# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for DumpVault tests.

Provides temporary backup roots, archive factories, a spy that replaces
process spawning, and fake dump/restore executables backed by a plain
directory standing in for the database.
"""

import asyncio
import os
import stat
import sys
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from pathlib import Path
from typing import Callable, Dict, Generator, List

import pytest
import structlog

from dumpvault.config import RetentionConfig
from dumpvault.vault.catalog import archive_name

# Set test environment variables
os.environ["DUMPVAULT_ADMIN_API_KEY"] = "test-api-key-12345"

TEST_URI = "mongodb://localhost:27017/travelcrm"
TEST_DATABASE = "travelcrm"


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo structlog configuration done by CLI commands."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def now() -> datetime:
    """A fixed reference time with whole seconds."""
    return datetime.now(UTC).replace(microsecond=0)


@pytest.fixture
def test_config(temp_dir: Path) -> RetentionConfig:
    """Create a test configuration."""
    return RetentionConfig(
        connection_uri=TEST_URI,
        backup_root=temp_dir / "backups",
        retention_days=30,
    )


@pytest.fixture
def make_archive(now: datetime) -> Callable[..., Path]:
    """
    Factory creating a complete archive directory of a given age.

    The directory's modification time is set to ``now - age_days`` after
    its files are written.
    """

    def factory(
        root: Path,
        age_days: float = 0,
        files: Dict[str, bytes] | None = None,
        database: str = TEST_DATABASE,
        name: str | None = None,
    ) -> Path:
        created = now - timedelta(days=age_days)
        path = root / (name or archive_name(database, created))
        path.mkdir(parents=True)

        for relative, content in (files or {f"{database}/users.bson.gz": b"x" * 100}).items():
            target = path / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

        timestamp = created.timestamp()
        os.utime(path, (timestamp, timestamp))
        return path

    return factory


# ============================================================================
# Process spy
# ============================================================================


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process."""

    def __init__(self, returncode: int, stderr: bytes, release: asyncio.Event | None):
        self._exit_code = returncode
        self._stderr = stderr
        self._release = release
        self.returncode: int | None = None
        self.killed = False

    async def communicate(self):
        if self._release is not None:
            await self._release.wait()
        self.returncode = self._exit_code
        return b"", self._stderr

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9

    async def wait(self) -> int | None:
        return self.returncode


class SpawnSpy:
    """
    Replacement for ``dumpvault.process._spawn``.

    Records every argv. Set ``release`` to an unset Event to make the
    child block until the test sets it.
    """

    def __init__(self):
        self.calls: List[List[str]] = []
        self.returncode = 0
        self.stderr = b"done dumping travelcrm.users"
        self.release: asyncio.Event | None = None
        self.started = asyncio.Event()
        self.processes: List[FakeProcess] = []

    async def __call__(self, *argv: str) -> FakeProcess:
        self.calls.append(list(argv))
        process = FakeProcess(self.returncode, self.stderr, self.release)
        self.processes.append(process)
        self.started.set()
        return process


@pytest.fixture
def spawn_spy(monkeypatch) -> SpawnSpy:
    """Replace process spawning with a recording fake."""
    spy = SpawnSpy()
    monkeypatch.setattr("dumpvault.process._spawn", spy)
    return spy


# ============================================================================
# Fake dump/restore executables
# ============================================================================

FAKE_DUMP_SCRIPT = """#!/bin/sh
out=""
uri=""
for arg in "$@"; do
  case "$arg" in
    --version) echo "fake-mongodump version: 100.9.4"; exit 0 ;;
    --out=*) out="${{arg#--out=}}" ;;
    --uri=*) uri="${{arg#--uri=}}" ;;
  esac
done
echo "dump $*" >> "{calls}"
db="${{uri##*/}}"
db="${{db%%\\?*}}"
mkdir -p "$out/$db"
cp -R "{data}/." "$out/$db/"
echo "writing $db.records to $out/$db" >&2
echo "done dumping $db.records" >&2
"""

FAKE_RESTORE_SCRIPT = """#!/bin/sh
src=""
for arg in "$@"; do
  case "$arg" in
    --version) echo "fake-mongorestore version: 100.9.4"; exit 0 ;;
    --*) ;;
    *) src="$arg" ;;
  esac
done
echo "restore $*" >> "{calls}"
rm -rf "{data}"
mkdir -p "{data}"
cp -R "$src/." "{data}/"
echo "restored records successfully" >&2
echo "done" >&2
"""

FAKE_FAILING_SCRIPT = """#!/bin/sh
echo "error connecting to host: connection refused" >&2
exit 2
"""

FAKE_SLOW_SCRIPT = """#!/bin/sh
exec sleep 30
"""


@dataclass
class FakeMongoTools:
    """Paths of the fake executables and the directory acting as the database."""

    dump: Path
    restore: Path
    failing: Path
    slow: Path
    data_dir: Path
    calls_log: Path

    def write_records(self, records: Dict[str, str]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        for key, value in records.items():
            (self.data_dir / f"{key}.json").write_text(value)

    def read_records(self) -> Dict[str, str]:
        if not self.data_dir.exists():
            return {}
        return {path.stem: path.read_text() for path in sorted(self.data_dir.glob("*.json"))}

    def calls(self) -> List[str]:
        if not self.calls_log.exists():
            return []
        return self.calls_log.read_text().splitlines()


def _write_executable(path: Path, content: str) -> Path:
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_mongo_tools(temp_dir: Path) -> FakeMongoTools:
    """
    POSIX shell scripts mimicking mongodump and mongorestore.

    The dump copies ``data_dir`` into ``<out>/<database>``; the restore
    replaces ``data_dir`` with the given source directory.
    """
    if sys.platform == "win32":
        pytest.skip("fake tools are POSIX shell scripts")

    bin_dir = temp_dir / "bin"
    bin_dir.mkdir()
    data_dir = temp_dir / "live-db"
    data_dir.mkdir()
    calls_log = temp_dir / "tool-calls.log"

    return FakeMongoTools(
        dump=_write_executable(
            bin_dir / "mongodump",
            FAKE_DUMP_SCRIPT.format(calls=calls_log, data=data_dir),
        ),
        restore=_write_executable(
            bin_dir / "mongorestore",
            FAKE_RESTORE_SCRIPT.format(calls=calls_log, data=data_dir),
        ),
        failing=_write_executable(bin_dir / "failing-tool", FAKE_FAILING_SCRIPT),
        slow=_write_executable(bin_dir / "slow-tool", FAKE_SLOW_SCRIPT),
        data_dir=data_dir,
        calls_log=calls_log,
    )


@pytest.fixture
def tools_config(test_config: RetentionConfig, fake_mongo_tools: FakeMongoTools) -> RetentionConfig:
    """Test configuration pointing at the fake executables."""
    return test_config.with_updates(
        dump_tool=str(fake_mongo_tools.dump),
        restore_tool=str(fake_mongo_tools.restore),
    )
