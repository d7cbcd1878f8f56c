"""Out-of-band control channel to the running emulator.

The supervisor never talks to the guest directly: it reads the boot
property and requests the snapshot shutdown through adb. The channel is
best-effort by nature, since adbd is unreachable for most of an early boot.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from avd_prebake import constants
from avd_prebake._logging import get_logger
from avd_prebake.exceptions import ControlChannelError
from avd_prebake.subprocess_utils import run_command

logger = get_logger(__name__)


@runtime_checkable
class ControlChannel(Protocol):
    """Command/response interface to a running emulator."""

    async def get_property(self, name: str, timeout: float = constants.CONTROL_QUERY_TIMEOUT_SECONDS) -> str:
        """Read a guest system property.

        Returns:
            The property value with surrounding whitespace stripped
            ("" when the property is unset).

        Raises:
            ControlChannelError: Query failed or timed out
        """
        ...

    async def request_shutdown_with_snapshot(
        self, timeout: float = constants.SHUTDOWN_COMMAND_TIMEOUT_SECONDS
    ) -> None:
        """Ask the emulator to save its Quick Boot snapshot and exit.

        Fire-and-forget: completion is proven by process exit and the
        snapshot directory, not by a reply.

        Raises:
            ControlChannelError: Command could not be delivered
        """
        ...


class AdbControlChannel:
    """ControlChannel backed by the adb command-line tool.

    Usage:
        channel = AdbControlChannel("adb", serial="emulator-5554")
        value = await channel.get_property("sys.boot_completed")
        await channel.request_shutdown_with_snapshot()
    """

    __slots__ = ("_adb_bin", "_serial")

    def __init__(self, adb_bin: str = constants.DEFAULT_ADB_BIN, serial: str | None = None) -> None:
        self._adb_bin = adb_bin
        self._serial = serial

    def _base_args(self) -> list[str]:
        if self._serial:
            return [self._adb_bin, "-s", self._serial]
        return [self._adb_bin]

    async def _run(self, args: list[str], timeout: float) -> str:
        cmd = self._base_args() + args
        try:
            result = await run_command(cmd, timeout=timeout)
        except TimeoutError as e:
            raise ControlChannelError(
                f"adb {' '.join(args)} timed out after {timeout}s",
                context={"command": cmd, "timeout": timeout},
            ) from e
        except OSError as e:
            raise ControlChannelError(
                f"adb {' '.join(args)} failed to start: {e}",
                context={"command": cmd},
            ) from e

        if not result.ok:
            detail = (result.stderr or result.stdout).strip()
            raise ControlChannelError(
                f"adb {' '.join(args)} exited with code {result.returncode}: {detail or '(no output)'}",
                context={"command": cmd, "returncode": result.returncode, "stderr": result.stderr},
            )
        return result.stdout

    async def get_property(self, name: str, timeout: float = constants.CONTROL_QUERY_TIMEOUT_SECONDS) -> str:
        """Read a guest property via `adb shell getprop <name>`."""
        output = await self._run(["shell", "getprop", name], timeout)
        return output.strip()

    async def request_shutdown_with_snapshot(
        self, timeout: float = constants.SHUTDOWN_COMMAND_TIMEOUT_SECONDS
    ) -> None:
        """Send `adb emu kill`, which saves default_boot before exiting."""
        await self._run(["emu", "kill"], timeout)
        logger.debug("Snapshot shutdown requested", extra={"serial": self._serial or "(default)"})
