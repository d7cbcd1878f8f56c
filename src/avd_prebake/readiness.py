"""Boot readiness poller.

The guest offers no push notification when it finishes booting, so the
supervisor polls `sys.boot_completed` over the control channel on a fixed
interval. Each tick races three outcomes, checked in a fixed priority:

    1. process died   -> ProcessDied  (fast-fail, reported even past the deadline)
    2. property ready -> success      (returned on the tick that observed it)
    3. deadline hit   -> BootTimeout

Control channel failures are not outcomes: adbd is unreachable for most of
an early boot, so a failed query reads as "not ready yet".

Every wait inside a tick is bounded by the time left before the deadline
plus one poll interval, so the poller terminates within
``timeout + poll_interval`` whatever the control channel does.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from avd_prebake import constants
from avd_prebake._logging import get_logger
from avd_prebake.boot_log import read_log_tail
from avd_prebake.control_channel import ControlChannel
from avd_prebake.exceptions import BootTimeout, ControlChannelLost, ProcessDied
from avd_prebake.models import ReadinessSignal
from avd_prebake.process_handle import VmProcessHandle

logger = get_logger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class BootDeadline:
    """Absolute point in time after which polling stops.

    Times are in the clock's units (time.monotonic() in production).
    """

    started_at: float
    timeout_seconds: float

    @classmethod
    def start(cls, timeout_seconds: float, clock: Clock = time.monotonic) -> BootDeadline:
        """Deadline ``timeout_seconds`` from now."""
        return cls(started_at=clock(), timeout_seconds=timeout_seconds)

    @property
    def at(self) -> float:
        return self.started_at + self.timeout_seconds

    def remaining(self, now: float) -> float:
        return max(0.0, self.at - now)

    def expired(self, now: float) -> bool:
        return now >= self.at


@dataclass(frozen=True, slots=True)
class BootReport:
    """How the guest became ready."""

    polls: int
    boot_seconds: float


async def query_readiness(
    channel: ControlChannel,
    *,
    property_name: str = constants.READINESS_PROPERTY,
    ready_value: str = constants.READY_VALUE,
    timeout: float = constants.CONTROL_QUERY_TIMEOUT_SECONDS,
) -> ReadinessSignal:
    """Read the readiness property once.

    Returns:
        READY if the property equals ready_value, NOT_READY for any other
        value, UNKNOWN if the query failed or timed out.
    """
    try:
        value = await asyncio.wait_for(channel.get_property(property_name, timeout=timeout), timeout=timeout)
    except Exception as e:  # noqa: BLE001
        logger.debug(
            "Readiness query failed (treated as not ready)",
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        return ReadinessSignal.UNKNOWN

    if value == ready_value:
        return ReadinessSignal.READY
    return ReadinessSignal.NOT_READY


async def wait_for_boot(  # noqa: PLR0913
    process: VmProcessHandle,
    channel: ControlChannel,
    deadline: BootDeadline,
    *,
    boot_log_path: Path,
    poll_interval: float = constants.DEFAULT_POLL_INTERVAL_SECONDS,
    log_tail_lines: int = constants.LOG_TAIL_LINES,
    property_name: str = constants.READINESS_PROPERTY,
    ready_value: str = constants.READY_VALUE,
    query_timeout: float = constants.CONTROL_QUERY_TIMEOUT_SECONDS,
    max_consecutive_query_errors: int | None = None,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> BootReport:
    """Poll until the guest reports boot completion.

    Args:
        process: Emulator process handle (liveness)
        channel: Control channel (readiness property)
        deadline: Boot deadline, computed at launch
        boot_log_path: Emulator log, tailed into failure diagnostics
        poll_interval: Seconds between ticks
        log_tail_lines: Lines of log included in diagnostics
        property_name: Guest property to poll
        ready_value: Property value meaning "booted"
        query_timeout: Upper bound for a single query
        max_consecutive_query_errors: Raise ControlChannelLost after this many
            failed queries in a row. None never gives up before the deadline.
        clock: Monotonic clock, injectable for tests
        sleep: Async sleep, injectable for tests

    Returns:
        BootReport with the number of polls and elapsed boot time

    Raises:
        ProcessDied: Emulator exited before becoming ready
        ControlChannelLost: Too many consecutive failed queries
        BootTimeout: Deadline reached without readiness
    """
    logger.info(
        "Waiting for %s=%s",
        property_name,
        ready_value,
        extra={"timeout_seconds": deadline.timeout_seconds, "poll_interval": poll_interval},
    )

    polls = 0
    consecutive_errors = 0
    last_signal: ReadinessSignal | None = None

    while True:
        polls += 1

        # 1. Fast-fail on a dead process, regardless of the deadline
        if not await process.is_alive():
            log_tail = await read_log_tail(boot_log_path, log_tail_lines)
            logger.error(
                "Emulator process is no longer running",
                extra={"pid": process.pid, "exit_code": process.returncode, "polls": polls},
            )
            raise ProcessDied(
                f"Emulator process (PID={process.pid}) exited before boot completed",
                log_tail,
                exit_code=process.returncode,
                context={"pid": process.pid, "polls": polls},
            )

        # 2. Query, bounded so a hung channel cannot outlive the deadline by more than one interval
        now = clock()
        tick_timeout = min(query_timeout, deadline.remaining(now) + poll_interval)
        signal = await query_readiness(
            channel,
            property_name=property_name,
            ready_value=ready_value,
            timeout=tick_timeout,
        )
        if signal != last_signal:
            logger.debug("Readiness changed", extra={"signal": signal.value, "polls": polls})
            last_signal = signal

        # 3. Ready wins on the tick that observed it
        if signal is ReadinessSignal.READY:
            boot_seconds = clock() - deadline.started_at
            logger.info("Emulator booted", extra={"polls": polls, "boot_seconds": round(boot_seconds, 1)})
            return BootReport(polls=polls, boot_seconds=boot_seconds)

        if signal is ReadinessSignal.UNKNOWN:
            consecutive_errors += 1
            if max_consecutive_query_errors is not None and consecutive_errors >= max_consecutive_query_errors:
                log_tail = await read_log_tail(boot_log_path, log_tail_lines)
                logger.error(
                    "Control channel unreachable",
                    extra={"consecutive_errors": consecutive_errors, "polls": polls},
                )
                raise ControlChannelLost(
                    f"Control channel failed {consecutive_errors} consecutive times",
                    log_tail,
                    timeout_seconds=deadline.timeout_seconds,
                    polls=polls,
                )
        else:
            consecutive_errors = 0

        # 4. Deadline
        now = clock()
        if deadline.expired(now):
            log_tail = await read_log_tail(boot_log_path, log_tail_lines)
            logger.error(
                "Emulator boot timed out",
                extra={"timeout_seconds": deadline.timeout_seconds, "polls": polls},
            )
            raise BootTimeout(
                f"Emulator boot timed out after {deadline.timeout_seconds:g} seconds",
                log_tail,
                timeout_seconds=deadline.timeout_seconds,
                polls=polls,
            )

        # 5. Never sleep past the deadline
        await sleep(min(poll_interval, deadline.remaining(now)))
