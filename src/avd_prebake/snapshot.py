"""Quick Boot snapshot shutdown and verification.

`adb emu kill` makes the emulator save its `default_boot` snapshot and
exit. There is no reply to wait for: the proof that the snapshot was
written is the process exiting and the snapshot directory existing
afterwards.
"""

from __future__ import annotations

from pathlib import Path

import aiofiles.os

from avd_prebake import constants
from avd_prebake._logging import get_logger
from avd_prebake.control_channel import ControlChannel
from avd_prebake.exceptions import ControlChannelError, SnapshotMissing
from avd_prebake.process_handle import VmProcessHandle

logger = get_logger(__name__)

_NO_SNAPSHOTS_DIR = "(no snapshots directory)"


async def trigger_snapshot(
    process: VmProcessHandle,
    channel: ControlChannel,
    *,
    grace_seconds: float = constants.SHUTDOWN_GRACE_SECONDS,
) -> bool:
    """Request a snapshot shutdown and wait for the emulator to exit.

    Idempotent: an emulator that already exited is treated as shut down,
    without sending anything or waiting.

    The command is sent once. Delivery errors are logged, not raised, and a
    process that outlives the grace period is reported but not treated as
    fatal: the snapshot may be on disk already, and the verifier decides.

    Args:
        process: Emulator process, already confirmed booted
        channel: Control channel
        grace_seconds: Maximum wait for exit after the command

    Returns:
        True if the process exited (now or before the call), False if it is
        still running after the grace period
    """
    if not await process.is_alive():
        logger.info("Emulator already exited", extra={"exit_code": process.returncode})
        return True

    logger.info("Stopping emulator to save Quick Boot snapshot", extra={"pid": process.pid})
    try:
        await channel.request_shutdown_with_snapshot()
    except ControlChannelError as e:
        logger.warning("Snapshot shutdown command failed", extra={"error": e.message})

    exit_code = await process.join(grace_seconds)
    if exit_code is None:
        logger.warning(
            "Emulator still running after shutdown grace period",
            extra={"pid": process.pid, "grace_seconds": grace_seconds},
        )
        return False

    logger.info("Emulator stopped", extra={"exit_code": exit_code})
    return True


async def describe_directory(path: Path) -> str:
    """List a directory for diagnostics, one entry per line, directories suffixed with '/'."""
    try:
        names = sorted(await aiofiles.os.listdir(path))
    except FileNotFoundError:
        return _NO_SNAPSHOTS_DIR
    except OSError as e:
        return f"(cannot list {path}: {e})"

    if not names:
        return "(empty)"
    lines = []
    for name in names:
        suffix = "/" if await aiofiles.os.path.isdir(path / name) else ""
        lines.append(f"{name}{suffix}")
    return "\n".join(lines)


async def verify_snapshot(snapshot_dir: Path) -> Path:
    """Check that the Quick Boot snapshot directory exists.

    Existence only: the snapshot's contents are the emulator's business.

    Args:
        snapshot_dir: Expected `<avd>/snapshots/default_boot` directory

    Returns:
        snapshot_dir

    Raises:
        SnapshotMissing: Directory absent, with a listing of its parent
    """
    if await aiofiles.os.path.isdir(snapshot_dir):
        logger.info("Snapshot verified", extra={"snapshot_dir": str(snapshot_dir)})
        return snapshot_dir

    listing = await describe_directory(snapshot_dir.parent)
    logger.error(
        "Snapshot directory not found",
        extra={"snapshot_dir": str(snapshot_dir), "parent_listing": listing},
    )
    raise SnapshotMissing(
        f"Snapshot directory not found at {snapshot_dir}",
        expected_path=snapshot_dir,
        listing=listing,
    )
