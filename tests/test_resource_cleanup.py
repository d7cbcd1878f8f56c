"""Tests for SIGTERM → SIGKILL process cleanup and file cleanup."""

from pathlib import Path

from avd_prebake.resource_cleanup import cleanup_file, cleanup_process
from tests.conftest import FakeProcess


class RaisingProcess(FakeProcess):
    def __init__(self, error: Exception) -> None:
        super().__init__()
        self.error = error

    async def terminate(self) -> None:
        raise self.error


# ============================================================================
# cleanup_process
# ============================================================================


class TestCleanupProcess:
    """Tests for cleanup_process()."""

    async def test_none(self) -> None:
        assert await cleanup_process(None, "emulator", "demo34") is True

    async def test_already_exited(self) -> None:
        process = FakeProcess(alive=False)
        assert await cleanup_process(process, "emulator", "demo34") is True
        assert process.terminate_calls == 0
        assert process.kill_calls == 0

    async def test_sigterm_suffices(self) -> None:
        process = FakeProcess()
        assert await cleanup_process(process, "emulator", "demo34", term_timeout=5) is True
        assert process.terminate_calls == 1
        assert process.kill_calls == 0
        assert process.join_timeouts == [5]

    async def test_escalates_to_sigkill(self) -> None:
        process = FakeProcess(exits_on_terminate=False)
        assert await cleanup_process(process, "emulator", "demo34", term_timeout=5, kill_timeout=3) is True
        assert process.terminate_calls == 1
        assert process.kill_calls == 1
        assert process.join_timeouts == [5, 3]
        assert process.returncode == -9

    async def test_survives_sigkill(self) -> None:
        process = FakeProcess(exits_on_terminate=False, exits_on_kill=False)
        assert await cleanup_process(process, "emulator", "demo34") is False

    async def test_race_with_exit(self) -> None:
        """Process gone between the liveness check and the signal."""
        assert await cleanup_process(RaisingProcess(ProcessLookupError()), "emulator", "demo34") is True

    async def test_unexpected_error_not_raised(self) -> None:
        assert await cleanup_process(RaisingProcess(PermissionError("EPERM")), "emulator", "demo34") is False


# ============================================================================
# cleanup_file
# ============================================================================


class TestCleanupFile:
    """Tests for cleanup_file()."""

    async def test_deletes(self, tmp_path: Path) -> None:
        path = tmp_path / "emulator-boot.log"
        path.write_text("log")
        assert await cleanup_file(path, "demo34", description="boot log") is True
        assert not path.exists()

    async def test_missing_is_success(self, tmp_path: Path) -> None:
        assert await cleanup_file(tmp_path / "gone.log", "demo34") is True

    async def test_none(self) -> None:
        assert await cleanup_file(None, "demo34") is True

    async def test_directory_fails(self, tmp_path: Path) -> None:
        assert await cleanup_file(tmp_path, "demo34") is False
        assert tmp_path.exists()
