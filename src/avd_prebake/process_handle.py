"""Emulator process handle.

Wraps the asyncio subprocess of the emulator with psutil so liveness checks
and signals are safe against PID reuse. The supervisor only needs three
operations from it: is_alive(), terminate()/kill() and join(timeout).
"""

import asyncio
import contextlib
from typing import Protocol, runtime_checkable

import psutil


@runtime_checkable
class VmProcessHandle(Protocol):
    """Lifecycle handle of the emulator process.

    Uses structural typing (Protocol) so tests can drive the pipeline with
    a fake process.
    """

    @property
    def pid(self) -> int | None: ...

    @property
    def returncode(self) -> int | None: ...

    async def is_alive(self) -> bool:
        """True while the process has not exited."""
        ...

    async def terminate(self) -> None:
        """Send SIGTERM."""
        ...

    async def kill(self) -> None:
        """Send SIGKILL."""
        ...

    async def join(self, timeout: float) -> int | None:
        """Wait up to ``timeout`` seconds for exit.

        Returns the exit code, or None if the process is still running.
        Returns immediately when the process has already exited.
        """
        ...


class VmProcess:
    """PID-reuse safe emulator process handle backed by psutil."""

    def __init__(self, async_proc: asyncio.subprocess.Process) -> None:
        self.async_proc = async_proc
        self.psutil_proc: psutil.Process | None = None

        if async_proc.pid:
            with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
                # Process already died or inaccessible
                self.psutil_proc = psutil.Process(async_proc.pid)

    @property
    def pid(self) -> int | None:
        return self.async_proc.pid

    @property
    def returncode(self) -> int | None:
        """Process return code (None if still running or not yet reaped)."""
        return self.async_proc.returncode

    async def is_alive(self) -> bool:
        """Check if the emulator is still running (PID-reuse safe).

        Zombies count as dead: the emulator has exited, it just has not been
        reaped yet by the event loop's child watcher.
        """
        if self.async_proc.returncode is not None:
            return False
        proc = self.psutil_proc
        if proc is None:
            return True

        def _probe() -> bool:
            return proc.is_running() and proc.status() != psutil.STATUS_ZOMBIE

        try:
            return await asyncio.to_thread(_probe)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return False

    async def terminate(self) -> None:
        """Terminate process (SIGTERM) without blocking the event loop."""
        if self.psutil_proc and await self.is_alive():
            with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
                await asyncio.to_thread(self.psutil_proc.terminate)
        elif self.async_proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self.async_proc.terminate()

    async def kill(self) -> None:
        """Kill process (SIGKILL) without blocking the event loop."""
        if self.psutil_proc and await self.is_alive():
            with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
                await asyncio.to_thread(self.psutil_proc.kill)
        elif self.async_proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self.async_proc.kill()

    async def join(self, timeout: float) -> int | None:
        """Wait for the process to exit, bounded by ``timeout`` seconds.

        Output goes to a log file, not pipes, so a plain wait() cannot
        deadlock on a full pipe buffer.
        """
        if self.async_proc.returncode is not None:
            return self.async_proc.returncode
        try:
            return await asyncio.wait_for(self.async_proc.wait(), timeout=timeout)
        except TimeoutError:
            return None
