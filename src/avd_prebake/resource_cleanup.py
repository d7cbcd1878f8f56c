"""Teardown helpers for the emulator process and its leftover files.

Both run on failure paths, so they log problems instead of raising them:
the error that got the pipeline here is the one the operator needs to see.
"""

from pathlib import Path

import aiofiles.os

from avd_prebake import constants
from avd_prebake._logging import get_logger
from avd_prebake.process_handle import VmProcessHandle

logger = get_logger(__name__)


async def cleanup_process(
    proc: VmProcessHandle | None,
    label: str,
    instance_id: str,
    term_timeout: float = constants.CLEANUP_TERM_TIMEOUT_SECONDS,
    kill_timeout: float = constants.CLEANUP_KILL_TIMEOUT_SECONDS,
) -> bool:
    """Stop a process, escalating from SIGTERM to SIGKILL.

    Args:
        proc: Handle to stop. None is accepted and counts as stopped
        label: What the process is, for log messages (e.g. "emulator")
        instance_id: AVD the process belongs to, for log context
        term_timeout: Wait after SIGTERM before escalating
        kill_timeout: Wait after SIGKILL before giving up

    Returns:
        True once the process is gone; False if it outlived SIGKILL or a
        signal could not be delivered
    """
    if proc is None:
        return True

    ctx = {"instance_id": instance_id, "pid": proc.pid}
    try:
        if not await proc.is_alive():
            logger.debug(f"{label} not running, nothing to stop", extra={**ctx, "exit_code": proc.returncode})
            return True

        await proc.terminate()
        exit_code = await proc.join(term_timeout)
        if exit_code is not None:
            logger.info(f"{label} stopped", extra={**ctx, "exit_code": exit_code, "signal": "SIGTERM"})
            return True

        logger.warning(f"{label} ignored SIGTERM for {term_timeout:g}s, sending SIGKILL", extra=ctx)
        await proc.kill()
        exit_code = await proc.join(kill_timeout)
        if exit_code is not None:
            logger.warning(f"{label} killed", extra={**ctx, "exit_code": exit_code, "signal": "SIGKILL"})
            return True

        logger.error(f"{label} still running {kill_timeout:g}s after SIGKILL", extra=ctx)
        return False

    except ProcessLookupError:
        # Exited between the liveness check and the signal
        logger.debug(f"{label} exited before it could be signalled", extra=ctx)
        return True

    except Exception as e:
        logger.error(
            f"Failed to stop {label}",
            extra={**ctx, "error": str(e), "error_type": type(e).__name__},
            exc_info=True,
        )
        return False


async def cleanup_file(
    file_path: Path | None,
    instance_id: str,
    description: str = "file",
) -> bool:
    """Remove a file. A file that is already gone counts as removed.

    Returns:
        False only if the file exists and could not be removed
    """
    if file_path is None:
        return True

    ctx = {"instance_id": instance_id, "path": str(file_path)}
    try:
        await aiofiles.os.remove(file_path)
    except FileNotFoundError:
        logger.debug(f"{description} already absent", extra=ctx)
        return True
    except OSError as e:
        logger.error(f"Could not remove {description}", extra={**ctx, "error": str(e)})
        return False

    logger.debug(f"{description} removed", extra=ctx)
    return True
