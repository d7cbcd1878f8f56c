"""Boot-and-snapshot pipeline.

    launch → wait for boot → snapshot shutdown → verify snapshot → publish sentinel

Stages run strictly in sequence and any failure aborts the run; nothing is
retried here. The emulator is the only concurrent actor, and the supervisor
guarantees it is not left running when the pipeline returns or raises.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

from avd_prebake._logging import get_logger
from avd_prebake.config import BuildConfig
from avd_prebake.control_channel import AdbControlChannel, ControlChannel
from avd_prebake.exceptions import BootTimeout
from avd_prebake.launcher import launch_emulator
from avd_prebake.models import BuildResult, Sentinel
from avd_prebake.process_handle import VmProcessHandle
from avd_prebake.readiness import BootDeadline, Clock, Sleep, wait_for_boot
from avd_prebake.resource_cleanup import cleanup_file, cleanup_process
from avd_prebake.sentinel import publish_sentinel
from avd_prebake.snapshot import trigger_snapshot, verify_snapshot

logger = get_logger(__name__)

Launcher = Callable[[BuildConfig], Awaitable[VmProcessHandle]]


def sentinel_for(config: BuildConfig) -> Sentinel:
    """Sentinel describing the image built from ``config``."""
    return Sentinel(
        instance_id=config.instance_id,
        api_level=config.api_level,
        arch=config.target_arch,
        system_image_ref=config.system_image_ref,
    )


async def run_prebake(
    config: BuildConfig,
    *,
    channel: ControlChannel | None = None,
    launcher: Launcher = launch_emulator,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> BuildResult:
    """Boot the emulator, save its Quick Boot snapshot and publish the sentinel.

    Args:
        config: Build configuration (read once, never mutated)
        channel: Control channel. Default: adb for config.adb_serial
        launcher: Starts the emulator. Injectable for tests
        clock: Monotonic clock for the boot deadline
        sleep: Async sleep between polls

    Returns:
        BuildResult describing the produced snapshot and sentinel

    Raises:
        LaunchFailure: Emulator could not be started
        ProcessDied: Emulator exited before booting
        BootTimeout: Boot did not complete before the deadline
        SnapshotMissing: Snapshot directory absent after shutdown
    """
    logger.info(
        "Starting prebake",
        extra={
            "instance_id": config.instance_id,
            "api_level": config.api_level,
            "avd_data_dir": str(config.avd_data_dir),
            "accel_mode": config.accel_mode.value,
            "boot_timeout_seconds": config.effective_boot_timeout_seconds,
        },
    )
    if channel is None:
        channel = AdbControlChannel(config.adb_bin, serial=config.adb_serial)

    process = await launcher(config)
    deadline = BootDeadline.start(config.effective_boot_timeout_seconds, clock)

    try:
        try:
            report = await wait_for_boot(
                process,
                channel,
                deadline,
                boot_log_path=config.boot_log_path,
                poll_interval=config.poll_interval_seconds,
                log_tail_lines=config.log_tail_lines,
                query_timeout=config.control_query_timeout_seconds,
                max_consecutive_query_errors=config.max_consecutive_query_errors,
                clock=clock,
                sleep=sleep,
            )
        except BootTimeout:
            logger.warning("Terminating emulator after boot timeout", extra={"pid": process.pid})
            raise

        clean_exit = await trigger_snapshot(process, channel, grace_seconds=config.shutdown_grace_seconds)
        snapshot_dir = await verify_snapshot(config.snapshot_dir)
    finally:
        # Kills the emulator on timeout and reaps a lingering one after verification
        await cleanup_process(process, "emulator", config.instance_id)

    sentinel_path = await publish_sentinel(sentinel_for(config), config.sentinel_path)

    if not config.keep_boot_log:
        await cleanup_file(config.boot_log_path, config.instance_id, description="boot log")

    logger.info("Prebake complete", extra={"instance_id": config.instance_id, "sentinel": str(sentinel_path)})
    return BuildResult(
        instance_id=config.instance_id,
        accel_mode=config.accel_mode,
        snapshot_dir=snapshot_dir,
        sentinel_path=sentinel_path,
        polls=report.polls,
        boot_seconds=report.boot_seconds,
        clean_exit=clean_exit,
    )
