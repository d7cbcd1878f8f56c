"""Host capability probes.

Probes only inform: the acceleration mode is always chosen explicitly by
the caller, because it has to match the host that later resumes the
snapshot rather than the host that builds it.
"""

import asyncio
import os

import aiofiles.os

from avd_prebake import constants
from avd_prebake._logging import get_logger

logger = get_logger(__name__)


async def kvm_writable(kvm_path: str = constants.KVM_DEVICE) -> bool:
    """Check whether the KVM device exists and is readable and writable.

    The emulator opens /dev/kvm read-write for `-accel on`. A device that
    exists but is not writable (container started without --device
    /dev/kvm, user not in the kvm group) makes the emulator fail late, so
    this is checked before launch.

    Returns:
        True if hardware acceleration can be used by this user
    """
    if not await aiofiles.os.path.exists(kvm_path):
        logger.debug("KVM not available: device does not exist", extra={"path": kvm_path})
        return False

    # os.access on a device node does not block, but keep the loop free anyway
    accessible = await asyncio.to_thread(os.access, kvm_path, os.R_OK | os.W_OK)
    if not accessible:
        logger.debug("KVM not available: permission denied", extra={"path": kvm_path})
        return False
    return True
