"""Subprocess helpers for short-lived tool invocations (adb)."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass

from avd_prebake._logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured result of a finished command."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_command(args: list[str], *, timeout: float) -> CommandResult:
    """Run a command to completion and capture its output.

    stdout/stderr are drained together with communicate(), so a chatty child
    cannot deadlock on a full pipe. On timeout or cancellation the child is killed and
    reaped before the exception propagates: adb can hang indefinitely while
    the emulator is still starting its adbd.

    Args:
        args: Command and arguments
        timeout: Seconds before the command is killed

    Returns:
        CommandResult with decoded output

    Raises:
        OSError: Binary not found or not executable
        TimeoutError: Command did not finish within timeout
    """
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except BaseException as e:
        # Timed out here or cancelled by the caller: the child must not outlive the call
        if proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(proc.wait(), timeout=1.0)
        logger.debug(
            "Command interrupted, child killed",
            extra={"command": args[0], "timeout": timeout, "error_type": type(e).__name__},
        )
        raise

    return CommandResult(
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode(errors="replace") if stdout else "",
        stderr=stderr.decode(errors="replace") if stderr else "",
    )
