"""Prebaked sentinel file.

The producer (this package) writes the sentinel only after the snapshot was
verified, so consumers may trust its mere existence: a bootstrap process
that finds it skips SDK setup and resumes from the snapshot.
"""

from __future__ import annotations

import contextlib
from pathlib import Path

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from avd_prebake._logging import get_logger
from avd_prebake.exceptions import SentinelError
from avd_prebake.models import Sentinel

logger = get_logger(__name__)


def render_sentinel(sentinel: Sentinel) -> str:
    """Serialize with the camelCase keys consumers read."""
    return sentinel.model_dump_json(by_alias=True) + "\n"


async def publish_sentinel(sentinel: Sentinel, path: Path) -> Path:
    """Write the sentinel atomically, replacing any previous one.

    Written to a temporary sibling first and renamed into place, so an
    interrupted run never leaves a truncated sentinel behind.

    Args:
        sentinel: Record to write
        path: Final sentinel path

    Returns:
        path

    Raises:
        SentinelError: Sentinel could not be written; any previous one is kept
    """
    content = render_sentinel(sentinel)
    tmp_path = path.parent / f"{path.name}.tmp"

    try:
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(content)
                await f.flush()
            # Atomic commit: replace is atomic on POSIX
            await aiofiles.os.replace(tmp_path, path)
        except BaseException:
            with contextlib.suppress(OSError):
                await aiofiles.os.remove(tmp_path)
            raise
    except OSError as e:
        raise SentinelError(f"Cannot write sentinel {path}: {e}", {"path": str(path)}) from e

    logger.info("Sentinel written", extra={"path": str(path), "content": content.strip()})
    return path


def read_sentinel(path: Path) -> Sentinel | None:
    """Read a sentinel written by publish_sentinel().

    Returns:
        The sentinel, or None if the file does not exist

    Raises:
        SentinelError: File exists but is not a valid sentinel
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        raise SentinelError(f"Cannot read sentinel {path}: {e}", {"path": str(path)}) from e

    try:
        return Sentinel.model_validate_json(raw)
    except ValidationError as e:
        raise SentinelError(f"Malformed sentinel {path}: {e}", {"path": str(path)}) from e


def is_prebaked(path: Path) -> bool:
    """True if a sentinel exists at ``path``.

    Existence is the whole contract; content is informational.
    """
    return path.is_file()
