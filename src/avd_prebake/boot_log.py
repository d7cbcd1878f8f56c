"""Emulator boot log access for failure diagnostics."""

from collections import deque
from pathlib import Path

import aiofiles

from avd_prebake import constants

_EMPTY_LOG = "(empty log)"


async def read_log_tail(path: Path, lines: int = constants.LOG_TAIL_LINES) -> str:
    """Return the last ``lines`` lines of the boot log.

    Never raises: this runs on failure paths, where a missing or unreadable
    log must not mask the original error.
    """
    try:
        ring: deque[str] = deque(maxlen=lines)
        async with aiofiles.open(path, encoding="utf-8", errors="replace") as f:
            async for line in f:
                ring.append(line.rstrip("\n"))
    except OSError as e:
        return f"(log unavailable: {e})"

    if not ring:
        return _EMPTY_LOG
    return "\n".join(ring)
