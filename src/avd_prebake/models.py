"""Data models for avd-prebake."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class AccelMode(str, Enum):
    """CPU acceleration mode the emulator runs under.

    Suspended CPU state is mode-specific: a snapshot saved under one mode and
    loaded on a host that only supports the other silently degrades to a cold
    boot. Always pick the mode matching the environment that will resume.
    """

    HARDWARE = "hardware"
    SOFTWARE = "software"

    @property
    def emulator_flags(self) -> list[str]:
        """Emulator command-line flags selecting this mode."""
        if self is AccelMode.HARDWARE:
            return ["-accel", "on"]
        return ["-no-accel"]


class ReadinessSignal(str, Enum):
    """Readiness observed on a single poll tick."""

    NOT_READY = "not-ready"
    READY = "ready"
    UNKNOWN = "unknown"
    """Control channel unreachable or query failed."""


class Sentinel(BaseModel):
    """Marker recording the configuration an image was prebaked with.

    Its existence tells the bootstrap process to skip SDK setup and resume
    from the snapshot.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    instance_id: str = Field(alias="instanceId", min_length=1)
    api_level: int = Field(alias="apiLevel", ge=1)
    arch: str = Field(min_length=1)
    system_image_ref: str = Field(alias="systemImageRef", min_length=1)


class BuildResult(BaseModel):
    """Outcome of a successful prebake run."""

    instance_id: str
    accel_mode: AccelMode
    snapshot_dir: Path
    sentinel_path: Path
    polls: int = Field(description="Readiness polls until the guest reported ready")
    boot_seconds: float = Field(description="Launch to ready, in seconds")
    clean_exit: bool = Field(description="Emulator exited within the shutdown grace period")
