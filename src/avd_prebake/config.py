"""Build configuration for a prebake run.

BuildConfig is the single immutable value passed through the pipeline.
It is assembled once at startup from the environment (Settings) and any
command-line overrides; no stage reads the environment on its own.

Example:
    ```python
    from avd_prebake import BuildConfig, run_prebake

    config = BuildConfig(
        instance_root=Path("/opt/android-sdk-linux"),
        instance_id="mag_mobile_preview_api_34",
        api_level=34,
        system_image_ref="system-images;android-34;default;x86_64",
        accel_mode="hardware",
    )
    result = asyncio.run(run_prebake(config))
    ```
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from avd_prebake import constants
from avd_prebake.models import AccelMode

if TYPE_CHECKING:
    from avd_prebake.settings import Settings

# AVD names as accepted by avdmanager
_INSTANCE_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")

# "system-images;android-34;default;x86_64" -> 4 components, ABI last
_SYSTEM_IMAGE_PARTS = 4


class BuildConfig(BaseModel):
    """Configuration for one boot-and-snapshot run.

    Attributes:
        instance_root: SDK root. The sentinel is written here.
        instance_avd_home: AVD storage root. Default: <instance_root>/avd.
        instance_id: AVD name, e.g. "mag_mobile_preview_api_34".
        api_level: Android API level recorded in the sentinel.
        system_image_ref: sdkmanager package of the system image.
        arch: ABI recorded in the sentinel. Default: last component of
            system_image_ref.
        accel_mode: Acceleration mode. Must match the mode available where
            the snapshot will be resumed.
        boot_timeout_seconds: Boot deadline. Default depends on accel_mode:
            900s software, 300s hardware.
        poll_interval_seconds: Interval between readiness polls.
        control_query_timeout_seconds: Upper bound for one readiness query.
        max_consecutive_query_errors: Abort after this many failed queries in
            a row. None (default) never aborts early.
        shutdown_grace_seconds: Wait for emulator exit after the snapshot
            shutdown command.
        boot_log_path: Emulator stdout/stderr sink.
        log_tail_lines: Log lines included in failure diagnostics.
        keep_boot_log: Keep the boot log after a successful run.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    # Instance
    instance_root: Path
    instance_avd_home: Path | None = None
    instance_id: str = Field(min_length=1, max_length=128)
    api_level: int = Field(ge=1)
    system_image_ref: str = Field(min_length=1)
    arch: str | None = None

    # Boot wait
    accel_mode: AccelMode = AccelMode.SOFTWARE
    boot_timeout_seconds: float | None = Field(default=None, gt=0)
    poll_interval_seconds: float = Field(default=constants.DEFAULT_POLL_INTERVAL_SECONDS, gt=0)
    control_query_timeout_seconds: float = Field(default=constants.CONTROL_QUERY_TIMEOUT_SECONDS, gt=0)
    max_consecutive_query_errors: int | None = Field(default=None, ge=1)

    # Tools
    emulator_bin: str = constants.DEFAULT_EMULATOR_BIN
    adb_bin: str = constants.DEFAULT_ADB_BIN
    adb_serial: str | None = None

    # Emulator resources
    memory_mb: int = Field(default=constants.DEFAULT_MEMORY_MB, ge=256)
    partition_size_mb: int = Field(default=constants.DEFAULT_PARTITION_SIZE_MB, ge=256)
    extra_emulator_args: tuple[str, ...] = ()

    # Shutdown and diagnostics
    shutdown_grace_seconds: float = Field(default=constants.SHUTDOWN_GRACE_SECONDS, ge=0)
    boot_log_path: Path = Path(constants.DEFAULT_BOOT_LOG_PATH)
    log_tail_lines: int = Field(default=constants.LOG_TAIL_LINES, ge=1)
    keep_boot_log: bool = False

    @field_validator("instance_id")
    @classmethod
    def _check_instance_id(cls, value: str) -> str:
        # Used as a path component and an emulator argument
        if not _INSTANCE_ID_PATTERN.match(value):
            raise ValueError(f"instance_id contains invalid characters (only [A-Za-z0-9._-] allowed): {value!r}")
        return value

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> BuildConfig:
        """Build config from environment settings plus explicit overrides.

        Overrides whose value is None are ignored so CLI options that were not
        given fall through to the environment.

        Raises:
            pydantic.ValidationError: Required fields missing or invalid
        """
        values = {key: value for key, value in settings.model_dump().items() if value is not None}
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def effective_boot_timeout_seconds(self) -> float:
        """Boot timeout, defaulted from the acceleration mode."""
        if self.boot_timeout_seconds is not None:
            return self.boot_timeout_seconds
        if self.accel_mode is AccelMode.HARDWARE:
            return constants.HARDWARE_BOOT_TIMEOUT_SECONDS
        return constants.SOFTWARE_BOOT_TIMEOUT_SECONDS

    @property
    def target_arch(self) -> str:
        """ABI recorded in the sentinel."""
        if self.arch:
            return self.arch
        parts = self.system_image_ref.split(";")
        if len(parts) >= _SYSTEM_IMAGE_PARTS and parts[-1]:
            return parts[-1]
        return constants.DEFAULT_ARCH

    @property
    def avd_home(self) -> Path:
        return self.instance_avd_home or self.instance_root / "avd"

    @property
    def avd_data_dir(self) -> Path:
        return self.avd_home / f"{self.instance_id}{constants.AVD_DIR_SUFFIX}"

    @property
    def snapshots_dir(self) -> Path:
        return self.avd_data_dir / constants.SNAPSHOTS_DIR_NAME

    @property
    def snapshot_dir(self) -> Path:
        """Quick Boot snapshot directory that must exist after shutdown."""
        return self.snapshots_dir / constants.QUICKBOOT_SNAPSHOT_NAME

    @property
    def sentinel_path(self) -> Path:
        return self.instance_root / constants.SENTINEL_FILENAME
