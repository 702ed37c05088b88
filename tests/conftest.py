"""Shared pytest fixtures for tart-client tests.

The suite never needs a real tart installation: `fake_tart` installs a POSIX
shell stand-in on PATH that records its arguments and TART_HOME, and whose
behaviour is steered through FAKE_TART_* environment variables (inherited by
every spawned process).
"""

import json
import os
import stat
import sys
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from tart_client.config import TartConfig
from tart_client.environment import TartEnvironment

skip_on_windows = pytest.mark.skipif(sys.platform == "win32", reason="Fake tart is a POSIX shell script")

# ============================================================================
# Fake tart executable
# ============================================================================
# Subcommands mirror tart's where the client tests need them; the extra
# "echo", "fail", "flood", "cat" and "env" subcommands exercise the generic
# runner.

FAKE_TART_SCRIPT = r"""#!/bin/sh
tab=$(printf '\t')
( IFS="$tab"; printf '%s\n' "$*" ) >> "$FAKE_TART_LOG"
printf '%s\n' "${TART_HOME-<unset>}" >> "$FAKE_TART_HOMES"

for last; do :; done

case "$1" in
  list)
    if [ -n "${FAKE_TART_LIST_EXIT-}" ]; then
      echo "Error: cannot read VM directory" >&2
      exit "$FAKE_TART_LIST_EXIT"
    fi
    printf '%s' "${FAKE_TART_VMS-[]}"
    ;;
  ip)
    printf '  %s  \n' "${FAKE_TART_IP-192.168.64.5}"
    ;;
  get)
    printf 'CPU Memory Disk\n4   8192   50\n'
    ;;
  login)
    cat > "$FAKE_TART_STDIN"
    ;;
  run)
    case "${FAKE_TART_RUN_MODE-ready}" in
      ready)
        echo "booting..."
        echo "VM is up"
        exec sleep 30
        ;;
      exit_ok)
        echo "booting..."
        exit 0
        ;;
      exit_fail)
        echo "booting..."
        echo "the VM $last does not exist" >&2
        exit 1
        ;;
      stderr_flood)
        i=0
        while [ $i -lt 3000 ]; do
          echo "warning: slow disk while booting, retrying request number $i" >&2
          i=$((i+1))
        done
        echo "VM is up"
        exec sleep 30
        ;;
      long_line)
        head -c 1200000 /dev/zero | tr '\0' 'a'
        echo
        exec sleep 30
        ;;
      ready_long_line)
        echo "VM is up"
        head -c 1200000 /dev/zero | tr '\0' 'a'
        echo
        yes "serial console: guest output line" | head -n 100000
        touch "$FAKE_TART_DONE"
        exec sleep 30
        ;;
      ready_then_fail)
        echo "booting..."
        echo "VM is up"
        echo "guest kernel panic" >&2
        exit 3
        ;;
    esac
    ;;
  echo)
    shift
    sleep "${FAKE_TART_DELAY-0}"
    echo "$*"
    ;;
  fail)
    echo "partial output"
    echo "Error: $2" >&2
    exit "${3-1}"
    ;;
  flood)
    i=0
    while [ $i -lt 4000 ]; do
      echo "stdout line $i .................................................."
      echo "stderr line $i .................................................." >&2
      i=$((i+1))
    done
    ;;
  cat)
    cat
    ;;
  env)
    echo "TART_HOME=${TART_HOME-<unset>}"
    echo "FAKE_EXTRA=${FAKE_EXTRA-<unset>}"
    ;;
  *)
    if [ -n "${FAKE_TART_EXIT-}" ] && [ "$FAKE_TART_EXIT" != "0" ]; then
      echo "${FAKE_TART_STDERR-Error: failed}" >&2
      exit "$FAKE_TART_EXIT"
    fi
    ;;
esac
"""


def vm_record(name: str, state: str = "stopped", source: str = "local", **extra: Any) -> dict[str, Any]:
    """A `tart list --format json` record, with tart's capitalised keys."""
    record: dict[str, Any] = {
        "Name": name,
        "Source": source,
        "State": state,
        "Running": state == "running",
        "Disk": 50,
        "Size": 21,
        "SizeOnDisk": 18,
    }
    record.update(extra)
    return record


@dataclass
class FakeTart:
    """Handle on the installed fake tart executable."""

    binary: Path
    home: Path
    log: Path
    homes_log: Path
    stdin_file: Path
    monkeypatch: pytest.MonkeyPatch

    def config(self, **overrides: Any) -> TartConfig:
        values: dict[str, Any] = {"binary": str(self.binary), "config_dir": self.home}
        values.update(overrides)
        return TartConfig(**values)

    def environment(self) -> TartEnvironment:
        return TartEnvironment(binary=self.binary, config_dir=self.home)

    def calls(self) -> list[list[str]]:
        """Argument lists of every invocation so far, in order."""
        if not self.log.exists():
            return []
        return [line.split("\t") for line in self.log.read_text().splitlines()]

    def homes(self) -> list[str]:
        """TART_HOME seen by every invocation so far."""
        if not self.homes_log.exists():
            return []
        return self.homes_log.read_text().splitlines()

    def set_vms(self, records: list[dict[str, Any]]) -> None:
        self.monkeypatch.setenv("FAKE_TART_VMS", json.dumps(records))

    def set_raw_list_output(self, output: str) -> None:
        self.monkeypatch.setenv("FAKE_TART_VMS", output)

    def set_run_mode(self, mode: str) -> None:
        self.monkeypatch.setenv("FAKE_TART_RUN_MODE", mode)

    def set_list_failure(self, exit_code: int) -> None:
        self.monkeypatch.setenv("FAKE_TART_LIST_EXIT", str(exit_code))

    def fail_with(self, exit_code: int, stderr: str) -> None:
        """Make every tart subcommand without dedicated behaviour fail."""
        self.monkeypatch.setenv("FAKE_TART_EXIT", str(exit_code))
        self.monkeypatch.setenv("FAKE_TART_STDERR", stderr)


@pytest.fixture
def fake_tart(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[FakeTart]:
    """Install a fake `tart` at the front of PATH."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    binary = bin_dir / "tart"
    binary.write_text(FAKE_TART_SCRIPT)
    binary.chmod(binary.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    home = tmp_path / "tart-home"
    home.mkdir(mode=0o700)

    fake = FakeTart(
        binary=binary,
        home=home,
        log=tmp_path / "calls.log",
        homes_log=tmp_path / "homes.log",
        stdin_file=tmp_path / "stdin.txt",
        monkeypatch=monkeypatch,
    )

    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    monkeypatch.setenv("FAKE_TART_LOG", str(fake.log))
    monkeypatch.setenv("FAKE_TART_HOMES", str(fake.homes_log))
    monkeypatch.setenv("FAKE_TART_STDIN", str(fake.stdin_file))
    for var in (
        "FAKE_TART_VMS",
        "FAKE_TART_RUN_MODE",
        "FAKE_TART_EXIT",
        "FAKE_TART_STDERR",
        "FAKE_TART_IP",
        "FAKE_TART_DONE",
        "FAKE_TART_LIST_EXIT",
    ):
        monkeypatch.delenv(var, raising=False)
    for var in ("TART_HOME", "TART_CLIENT_CONFIG_DIR", "TART_CLIENT_BINARY", "TART_CLIENT_HOST"):
        monkeypatch.delenv(var, raising=False)

    yield fake
