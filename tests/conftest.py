"""Shared pytest fixtures and fakes for avd-prebake tests.

The pipeline only touches the outside world through three seams: the
process handle, the control channel and the clock. The fakes below stand in
for an emulator at those seams so every stage can run in-process, with
virtual time.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from avd_prebake import constants
from avd_prebake.config import BuildConfig

# ============================================================================
# Fakes
# ============================================================================


class FakeProcess:
    """VmProcessHandle driven by the test.

    Args:
        alive: Start running (True) or already exited (False)
        die_after_checks: Exit on the liveness check after this many
            successful ones (None: never exits on its own)
        exits_on_terminate: SIGTERM makes the process exit
        exits_on_kill: SIGKILL makes the process exit
    """

    def __init__(
        self,
        *,
        pid: int = 4242,
        alive: bool = True,
        exit_code: int = 0,
        die_after_checks: int | None = None,
        exits_on_terminate: bool = True,
        exits_on_kill: bool = True,
    ) -> None:
        self.pid = pid
        self.returncode: int | None = None if alive else exit_code
        self.die_after_checks = die_after_checks
        self.exits_on_terminate = exits_on_terminate
        self.exits_on_kill = exits_on_kill
        self.alive_checks = 0
        self.terminate_calls = 0
        self.kill_calls = 0
        self.join_timeouts: list[float] = []

    def exit(self, code: int = 0) -> None:
        if self.returncode is None:
            self.returncode = code

    async def is_alive(self) -> bool:
        if self.returncode is None and self.die_after_checks is not None and self.alive_checks >= self.die_after_checks:
            self.exit(1)
        self.alive_checks += 1
        return self.returncode is None

    async def terminate(self) -> None:
        self.terminate_calls += 1
        if self.exits_on_terminate:
            self.exit(-15)

    async def kill(self) -> None:
        self.kill_calls += 1
        if self.exits_on_kill:
            self.exit(-9)

    async def join(self, timeout: float) -> int | None:
        self.join_timeouts.append(timeout)
        return self.returncode


class FakeChannel:
    """ControlChannel replaying scripted property values.

    Each get_property() call consumes the next item of ``responses``: a
    string is returned, an exception is raised. Once the script is used up
    every call returns ``default``.
    """

    def __init__(
        self,
        responses: list[str | Exception] | None = None,
        *,
        default: str = "0",
        on_shutdown: Callable[[], None] | None = None,
        shutdown_error: Exception | None = None,
    ) -> None:
        self.responses = list(responses or [])
        self.default = default
        self.on_shutdown = on_shutdown
        self.shutdown_error = shutdown_error
        self.queries: list[str] = []
        self.query_timeouts: list[float] = []
        self.shutdown_requests = 0

    async def get_property(self, name: str, timeout: float = constants.CONTROL_QUERY_TIMEOUT_SECONDS) -> str:
        self.queries.append(name)
        self.query_timeouts.append(timeout)
        item = self.responses.pop(0) if self.responses else self.default
        if isinstance(item, Exception):
            raise item
        return item

    async def request_shutdown_with_snapshot(
        self, timeout: float = constants.SHUTDOWN_COMMAND_TIMEOUT_SECONDS
    ) -> None:
        self.shutdown_requests += 1
        if self.on_shutdown is not None:
            self.on_shutdown()
        if self.shutdown_error is not None:
            raise self.shutdown_error


class FakeClock:
    """Virtual monotonic clock; sleep() advances it instantly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


# ============================================================================
# Fixtures
# ============================================================================

SYSTEM_IMAGE = "system-images;android-34;default;x86_64"


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def boot_log(tmp_path: Path) -> Path:
    """Boot log path inside the test's temporary directory (not created)."""
    return tmp_path / "logs" / "emulator-boot.log"


@pytest.fixture
def build_config(tmp_path: Path, boot_log: Path) -> BuildConfig:
    """Minimal valid config rooted in tmp_path."""
    return BuildConfig(
        instance_root=tmp_path / "sdk",
        instance_id="demo34",
        api_level=34,
        system_image_ref=SYSTEM_IMAGE,
        boot_timeout_seconds=30,
        poll_interval_seconds=3,
        shutdown_grace_seconds=5,
        boot_log_path=boot_log,
    )
