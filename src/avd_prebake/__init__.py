"""avd-prebake: prebuild Android emulator images that resume from a snapshot.

Boots an AVD once, waits for the guest to report boot completion, saves
the Quick Boot snapshot and writes a `.prebaked` sentinel. Sandboxes started
from the resulting image resume in about a minute instead of cold-booting
for ten.

Quick Start:
    ```python
    import asyncio
    from pathlib import Path

    from avd_prebake import BuildConfig, run_prebake

    config = BuildConfig(
        instance_root=Path("/opt/android-sdk-linux"),
        instance_id="mag_mobile_preview_api_34",
        api_level=34,
        system_image_ref="system-images;android-34;default;x86_64",
        accel_mode="hardware",
    )
    result = asyncio.run(run_prebake(config))
    print(result.snapshot_dir)
    ```

Bootstrap side:
    ```python
    from avd_prebake import is_prebaked

    if is_prebaked(Path("/opt/android-sdk-linux/.prebaked")):
        ...  # skip SDK setup, resume from snapshot
    ```

Requirements:
    - Android emulator and adb on PATH (or configured)
    - An existing AVD with fastboot.forceColdBoot=no
    - /dev/kvm for hardware acceleration
    - Python 3.12+
"""

from avd_prebake.config import BuildConfig
from avd_prebake.exceptions import (
    BootTimeout,
    ControlChannelError,
    ControlChannelLost,
    LaunchFailure,
    PrebakeError,
    ProcessDied,
    SentinelError,
    SnapshotMissing,
)
from avd_prebake.models import AccelMode, BuildResult, ReadinessSignal, Sentinel
from avd_prebake.sentinel import is_prebaked, publish_sentinel, read_sentinel
from avd_prebake.settings import Settings
from avd_prebake.supervisor import run_prebake

__all__ = [
    "AccelMode",
    "BootTimeout",
    "BuildConfig",
    "BuildResult",
    "ControlChannelError",
    "ControlChannelLost",
    "LaunchFailure",
    "PrebakeError",
    "ProcessDied",
    "ReadinessSignal",
    "Sentinel",
    "SentinelError",
    "Settings",
    "SnapshotMissing",
    "is_prebaked",
    "publish_sentinel",
    "read_sentinel",
    "run_prebake",
]

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("avd-prebake")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"
