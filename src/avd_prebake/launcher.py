"""Emulator launcher.

Starts the Android emulator detached from the supervisor's session, with
combined stdout/stderr captured in a log file that outlives the call (the
readiness poller tails it for diagnostics).
"""

from __future__ import annotations

import asyncio
import os

import aiofiles.os

from avd_prebake._logging import get_logger
from avd_prebake.config import BuildConfig
from avd_prebake.exceptions import LaunchFailure
from avd_prebake.models import AccelMode
from avd_prebake.process_handle import VmProcess
from avd_prebake.system_probes import kvm_writable

logger = get_logger(__name__)


def build_emulator_cmd(config: BuildConfig) -> list[str]:
    """Build the emulator command line.

    Headless, silent and metrics-free, with guest-side GPU rendering so the
    snapshot does not depend on a host GPU.

    Args:
        config: Build configuration

    Returns:
        Emulator command as list of strings
    """
    cmd = [
        config.emulator_bin,
        "-avd",
        config.instance_id,
        *config.accel_mode.emulator_flags,
        "-no-window",
        "-no-audio",
        "-no-metrics",
        "-gpu",
        "guest",
        "-partition-size",
        str(config.partition_size_mb),
        "-memory",
        str(config.memory_mb),
    ]
    cmd.extend(config.extra_emulator_args)
    return cmd


def _emulator_env(config: BuildConfig) -> dict[str, str]:
    env = dict(os.environ)
    env["ANDROID_SDK_ROOT"] = str(config.instance_root)
    env["ANDROID_AVD_HOME"] = str(config.avd_home)
    return env


async def check_accel_mode(accel_mode: AccelMode) -> None:
    """Validate the requested acceleration mode against this host.

    The mode is never switched automatically. Hardware mode without a usable
    /dev/kvm is a configuration defect; software mode with KVM available is
    allowed (the resume environment may lack KVM) but logged.

    Raises:
        LaunchFailure: Hardware acceleration requested but unavailable
    """
    kvm_ok = await kvm_writable()
    if accel_mode is AccelMode.HARDWARE and not kvm_ok:
        raise LaunchFailure(
            "Hardware acceleration requested but /dev/kvm is missing or not writable",
            context={"accel_mode": accel_mode.value},
        )
    if accel_mode is AccelMode.SOFTWARE and kvm_ok:
        logger.info(
            "KVM is available but software emulation was requested; "
            "the snapshot will only resume fast on hosts without KVM acceleration",
            extra={"accel_mode": accel_mode.value},
        )
    elif accel_mode is AccelMode.SOFTWARE:
        logger.warning("Using software emulation (slow)", extra={"accel_mode": accel_mode.value})


async def launch_emulator(config: BuildConfig) -> VmProcess:
    """Start the emulator for ``config.instance_id``.

    Returns as soon as the process is forked; readiness is the poller's job.

    Args:
        config: Build configuration

    Returns:
        Handle of the running emulator

    Raises:
        LaunchFailure: Acceleration unavailable, log sink not writable, or
            the emulator binary could not be executed. Never retried.
    """
    await check_accel_mode(config.accel_mode)

    cmd = build_emulator_cmd(config)
    log_path = config.boot_log_path
    try:
        await aiofiles.os.makedirs(log_path.parent, exist_ok=True)
        # A real descriptor is needed: the child writes to it directly
        log_file = log_path.open("wb")
    except OSError as e:
        raise LaunchFailure(
            f"Cannot open emulator log {log_path}: {e}",
            context={"boot_log_path": str(log_path)},
        ) from e

    # The child inherits its own copy of the descriptor; ours is closed right away
    with log_file:
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=log_file,
                stderr=asyncio.subprocess.STDOUT,
                env=_emulator_env(config),
                start_new_session=True,
            )
        except OSError as e:
            raise LaunchFailure(
                f"Failed to launch emulator: {e}",
                context={"instance_id": config.instance_id, "command": cmd},
            ) from e

    logger.info(
        "Emulator started",
        extra={
            "instance_id": config.instance_id,
            "pid": proc.pid,
            "accel_mode": config.accel_mode.value,
            "boot_log": str(log_path),
        },
    )
    return VmProcess(proc)
