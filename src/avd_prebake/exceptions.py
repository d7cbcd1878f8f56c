"""Exception hierarchy for avd-prebake.

All exceptions inherit from PrebakeError base class.

Hierarchy:
    PrebakeError (base)
    ├── LaunchFailure            ← emulator could not be started (config/env defect)
    ├── ProcessDied              ← emulator exited before reporting ready
    ├── BootTimeout              ← readiness property never reached the ready value
    │   └── ControlChannelLost   ← too many consecutive control channel failures
    ├── SnapshotMissing          ← default_boot snapshot not on disk after shutdown
    ├── ControlChannelError      ← adb query failed (absorbed while polling)
    └── SentinelError            ← sentinel file unreadable or malformed

None of these is retried inside a pipeline run. A boot can take 15 minutes
under software emulation, so retry policy belongs to the caller (e.g. a CI
re-run) where the root-cause signal is not masked.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path


class PrebakeError(Exception):
    """Base exception for all prebake errors with structured context.

    Attributes:
        message: Human-readable error message
        context: Dictionary of structured error context for logging/debugging
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class LaunchFailure(PrebakeError):
    """Emulator process could not be started.

    Raised synchronously by the launcher when the start call fails (missing
    binary, permission denied) or when the requested acceleration mode is not
    usable on this host. Never retried: these are configuration errors.
    """


class _LogTailError(PrebakeError):
    """Base for failures whose main diagnostic is the emulator log tail."""

    def __init__(self, message: str, log_tail: str, context: dict[str, Any] | None = None):
        super().__init__(message, context)
        self.log_tail = log_tail


class ProcessDied(_LogTailError):
    """Emulator exited before the guest reported boot completion.

    Fast-fail path of the readiness poller: raised on the first tick that sees
    the process gone, without waiting for the deadline.

    Attributes:
        log_tail: Final lines of the captured emulator log
        exit_code: Process exit code if known
    """

    def __init__(
        self,
        message: str,
        log_tail: str,
        exit_code: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        ctx = context or {}
        ctx["exit_code"] = exit_code
        super().__init__(message, log_tail, ctx)
        self.exit_code = exit_code


class BootTimeout(_LogTailError):
    """Boot deadline elapsed without the readiness property becoming ready.

    Attributes:
        log_tail: Final lines of the captured emulator log
        timeout_seconds: Configured boot timeout
        polls: Number of poll ticks performed
    """

    def __init__(
        self,
        message: str,
        log_tail: str,
        timeout_seconds: float,
        polls: int,
        context: dict[str, Any] | None = None,
    ):
        ctx = context or {}
        ctx.update({"timeout_seconds": timeout_seconds, "polls": polls})
        super().__init__(message, log_tail, ctx)
        self.timeout_seconds = timeout_seconds
        self.polls = polls


class ControlChannelLost(BootTimeout):
    """Control channel failed on too many consecutive polls.

    Only raised when a cap on consecutive query errors is configured; without
    a cap, a dead channel is indistinguishable from a slow boot until the
    deadline fires.
    """


class SnapshotMissing(PrebakeError):
    """Snapshot directory absent after the emulator shut down.

    Attributes:
        expected_path: Where the default_boot snapshot should be
        listing: Contents of the parent snapshots directory (diagnostic)
    """

    def __init__(self, message: str, expected_path: Path, listing: str):
        super().__init__(message, {"expected_path": str(expected_path)})
        self.expected_path = expected_path
        self.listing = listing


class ControlChannelError(PrebakeError):
    """Control channel (adb) command failed or timed out.

    Absorbed by the readiness poller as "not yet ready": adb is routinely
    unavailable during early boot.
    """


class SentinelError(PrebakeError):
    """Sentinel file exists but cannot be parsed."""
