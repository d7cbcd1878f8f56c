"""Runtime configuration from environment variables."""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from avd_prebake import constants
from avd_prebake.models import AccelMode


class Settings(BaseSettings):
    """Raw configuration read once from the environment.

    Every field can be set with the PREBAKE_ prefix
    (e.g. PREBAKE_INSTANCE_ID=demo34). The instance fields also accept the
    variable names used by the container build (ANDROID_SDK_ROOT,
    ANDROID_AVD_HOME, AVD_ID, API_LEVEL, SYSTEM_IMAGE, BOOT_TIMEOUT).

    Identity fields are optional here: the CLI may supply them instead.
    BuildConfig.from_settings() enforces that they are present.
    """

    model_config = SettingsConfigDict(
        env_prefix="PREBAKE_",
        extra="ignore",
        populate_by_name=True,
    )

    # Instance identity and layout
    instance_root: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("PREBAKE_INSTANCE_ROOT", "ANDROID_SDK_ROOT"),
    )
    instance_avd_home: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("PREBAKE_INSTANCE_AVD_HOME", "ANDROID_AVD_HOME"),
    )
    instance_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PREBAKE_INSTANCE_ID", "AVD_ID"),
    )
    api_level: int | None = Field(
        default=None,
        validation_alias=AliasChoices("PREBAKE_API_LEVEL", "API_LEVEL"),
    )
    system_image_ref: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PREBAKE_SYSTEM_IMAGE_REF", "SYSTEM_IMAGE"),
    )
    arch: str | None = None

    # Boot wait
    accel_mode: AccelMode = AccelMode.SOFTWARE
    boot_timeout_seconds: float | None = Field(
        default=None,
        validation_alias=AliasChoices("PREBAKE_BOOT_TIMEOUT_SECONDS", "BOOT_TIMEOUT"),
    )
    poll_interval_seconds: float = constants.DEFAULT_POLL_INTERVAL_SECONDS
    control_query_timeout_seconds: float = constants.CONTROL_QUERY_TIMEOUT_SECONDS
    max_consecutive_query_errors: int | None = None

    # Tools
    emulator_bin: str = constants.DEFAULT_EMULATOR_BIN
    adb_bin: str = constants.DEFAULT_ADB_BIN
    adb_serial: str | None = None

    # Emulator resources
    memory_mb: int = constants.DEFAULT_MEMORY_MB
    partition_size_mb: int = constants.DEFAULT_PARTITION_SIZE_MB

    # Shutdown and diagnostics
    shutdown_grace_seconds: float = constants.SHUTDOWN_GRACE_SECONDS
    boot_log_path: Path = Path(constants.DEFAULT_BOOT_LOG_PATH)
    log_tail_lines: int = constants.LOG_TAIL_LINES
    keep_boot_log: bool = False
