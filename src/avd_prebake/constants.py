"""Constants for avd-prebake configuration and limits."""

from typing import Final

# ============================================================================
# Boot Wait
# ============================================================================

DEFAULT_POLL_INTERVAL_SECONDS: Final[float] = 3.0
"""Interval between readiness polls."""

SOFTWARE_BOOT_TIMEOUT_SECONDS: Final[float] = 900.0
"""Boot timeout under software emulation (-no-accel). Cold boot takes 10+ minutes."""

HARDWARE_BOOT_TIMEOUT_SECONDS: Final[float] = 300.0
"""Boot timeout under hardware acceleration (KVM)."""

CONTROL_QUERY_TIMEOUT_SECONDS: Final[float] = 10.0
"""Upper bound for a single `adb shell getprop` call.
Also clipped to the time remaining before the boot deadline."""

READINESS_PROPERTY: Final[str] = "sys.boot_completed"
"""Guest property reporting boot completion."""

READY_VALUE: Final[str] = "1"
"""Value of READINESS_PROPERTY once the guest finished booting."""

LOG_TAIL_LINES: Final[int] = 80
"""Number of emulator log lines included in failure diagnostics."""

# ============================================================================
# Snapshot Shutdown
# ============================================================================

SHUTDOWN_GRACE_SECONDS: Final[float] = 60.0
"""How long to wait for the emulator to exit after `adb emu kill`.
The emulator writes the Quick Boot snapshot before exiting."""

SHUTDOWN_COMMAND_TIMEOUT_SECONDS: Final[float] = 15.0
"""Upper bound for the `adb emu kill` command itself."""

CLEANUP_TERM_TIMEOUT_SECONDS: Final[float] = 5.0
"""Seconds to wait after SIGTERM before escalating to SIGKILL."""

CLEANUP_KILL_TIMEOUT_SECONDS: Final[float] = 3.0
"""Seconds to wait after SIGKILL before giving up."""

# ============================================================================
# Emulator Resources
# ============================================================================

DEFAULT_MEMORY_MB: Final[int] = 1024
"""Guest RAM passed as -memory."""

DEFAULT_PARTITION_SIZE_MB: Final[int] = 2048
"""System/data partition size passed as -partition-size."""

DEFAULT_EMULATOR_BIN: Final[str] = "emulator"
DEFAULT_ADB_BIN: Final[str] = "adb"

DEFAULT_BOOT_LOG_PATH: Final[str] = "/tmp/emulator-boot.log"
"""Combined emulator stdout/stderr sink."""

KVM_DEVICE: Final[str] = "/dev/kvm"

# ============================================================================
# Filesystem Layout
# ============================================================================

AVD_DIR_SUFFIX: Final[str] = ".avd"
SNAPSHOTS_DIR_NAME: Final[str] = "snapshots"
QUICKBOOT_SNAPSHOT_NAME: Final[str] = "default_boot"
"""Snapshot the emulator saves on `adb emu kill` and loads on the next start."""

SENTINEL_FILENAME: Final[str] = ".prebaked"
"""Written under the instance root once the snapshot is verified."""

DEFAULT_ARCH: Final[str] = "x86_64"
"""Used when the system image reference carries no ABI component."""
