"""Unit tests for BuildConfig and Settings.

Tests validation, derived paths and timeouts, and environment loading.
No mocks - uses real environment variables via patch.dict.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from avd_prebake.config import BuildConfig
from avd_prebake.models import AccelMode
from avd_prebake.settings import Settings
from tests.conftest import SYSTEM_IMAGE


def make_config(**overrides: object) -> BuildConfig:
    values: dict[str, object] = {
        "instance_root": Path("/opt/android-sdk-linux"),
        "instance_id": "mag_mobile_preview_api_34",
        "api_level": 34,
        "system_image_ref": SYSTEM_IMAGE,
    }
    values.update(overrides)
    return BuildConfig(**values)


# ============================================================================
# Config Validation
# ============================================================================


class TestBuildConfigValidation:
    """Tests for BuildConfig field validation."""

    def test_defaults(self) -> None:
        config = make_config()
        assert config.accel_mode is AccelMode.SOFTWARE
        assert config.boot_timeout_seconds is None
        assert config.poll_interval_seconds == 3.0
        assert config.control_query_timeout_seconds == 10.0
        assert config.max_consecutive_query_errors is None
        assert config.shutdown_grace_seconds == 60.0
        assert config.emulator_bin == "emulator"
        assert config.adb_bin == "adb"
        assert config.adb_serial is None
        assert config.memory_mb == 1024
        assert config.partition_size_mb == 2048
        assert config.boot_log_path == Path("/tmp/emulator-boot.log")
        assert config.log_tail_lines == 80
        assert config.keep_boot_log is False

    @pytest.mark.parametrize("instance_id", ["demo34", "Pixel_7.API-34", "a"])
    def test_valid_instance_ids(self, instance_id: str) -> None:
        assert make_config(instance_id=instance_id).instance_id == instance_id

    @pytest.mark.parametrize("instance_id", ["", "../etc", "has space", "semi;colon"])
    def test_invalid_instance_ids(self, instance_id: str) -> None:
        with pytest.raises(ValidationError):
            make_config(instance_id=instance_id)

    def test_api_level_positive(self) -> None:
        with pytest.raises(ValidationError):
            make_config(api_level=0)

    def test_boot_timeout_positive(self) -> None:
        with pytest.raises(ValidationError):
            make_config(boot_timeout_seconds=0)

    def test_memory_minimum(self) -> None:
        assert make_config(memory_mb=256).memory_mb == 256
        with pytest.raises(ValidationError):
            make_config(memory_mb=255)

    def test_accel_mode_from_string(self) -> None:
        assert make_config(accel_mode="hardware").accel_mode is AccelMode.HARDWARE
        with pytest.raises(ValidationError):
            make_config(accel_mode="hvf")

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            make_config(boot_timeout=30)

    def test_frozen(self) -> None:
        config = make_config()
        with pytest.raises(ValidationError):
            config.api_level = 35  # type: ignore[misc]

    def test_required_fields(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            BuildConfig()  # type: ignore[call-arg]
        missing = {err["loc"][0] for err in exc_info.value.errors()}
        assert missing == {"instance_root", "instance_id", "api_level", "system_image_ref"}


# ============================================================================
# Derived values
# ============================================================================


class TestBootTimeout:
    """Tests for the acceleration-dependent default deadline."""

    def test_software_default(self) -> None:
        assert make_config(accel_mode=AccelMode.SOFTWARE).effective_boot_timeout_seconds == 900.0

    def test_hardware_default(self) -> None:
        assert make_config(accel_mode=AccelMode.HARDWARE).effective_boot_timeout_seconds == 300.0

    def test_explicit_overrides_mode(self) -> None:
        config = make_config(accel_mode=AccelMode.HARDWARE, boot_timeout_seconds=1200)
        assert config.effective_boot_timeout_seconds == 1200


class TestTargetArch:
    """Tests for the ABI recorded in the sentinel."""

    def test_from_system_image(self) -> None:
        config = make_config(system_image_ref="system-images;android-34;google_apis;arm64-v8a")
        assert config.target_arch == "arm64-v8a"

    def test_explicit(self) -> None:
        assert make_config(arch="x86").target_arch == "x86"

    @pytest.mark.parametrize("ref", ["android-34", "system-images;android-34;default;"])
    def test_fallback(self, ref: str) -> None:
        assert make_config(system_image_ref=ref).target_arch == "x86_64"


class TestPaths:
    """Tests for the AVD layout."""

    def test_default_layout(self) -> None:
        config = make_config()
        root = Path("/opt/android-sdk-linux")
        assert config.avd_home == root / "avd"
        assert config.avd_data_dir == root / "avd" / "mag_mobile_preview_api_34.avd"
        assert config.snapshots_dir == root / "avd" / "mag_mobile_preview_api_34.avd" / "snapshots"
        assert config.snapshot_dir == config.snapshots_dir / "default_boot"
        assert config.sentinel_path == root / ".prebaked"

    def test_custom_avd_home(self) -> None:
        config = make_config(instance_avd_home=Path("/data/avd"))
        assert config.snapshot_dir == Path("/data/avd/mag_mobile_preview_api_34.avd/snapshots/default_boot")
        # The sentinel stays at the SDK root
        assert config.sentinel_path == Path("/opt/android-sdk-linux/.prebaked")


# ============================================================================
# Environment
# ============================================================================


class TestFromSettings:
    """Tests for assembling BuildConfig from the environment."""

    def test_container_build_variables(self) -> None:
        env = {
            "ANDROID_SDK_ROOT": "/opt/android-sdk-linux",
            "AVD_ID": "mag_mobile_preview_api_34",
            "API_LEVEL": "34",
            "SYSTEM_IMAGE": SYSTEM_IMAGE,
            "BOOT_TIMEOUT": "1200",
        }
        with patch.dict(os.environ, env, clear=True):
            config = BuildConfig.from_settings(Settings())

        assert config.instance_root == Path("/opt/android-sdk-linux")
        assert config.instance_id == "mag_mobile_preview_api_34"
        assert config.api_level == 34
        assert config.system_image_ref == SYSTEM_IMAGE
        assert config.effective_boot_timeout_seconds == 1200

    def test_prefixed_variables(self) -> None:
        env = {
            "PREBAKE_INSTANCE_ROOT": "/sdk",
            "PREBAKE_INSTANCE_ID": "demo34",
            "PREBAKE_API_LEVEL": "34",
            "PREBAKE_SYSTEM_IMAGE_REF": SYSTEM_IMAGE,
            "PREBAKE_ACCEL_MODE": "hardware",
            "PREBAKE_MAX_CONSECUTIVE_QUERY_ERRORS": "20",
            "PREBAKE_KEEP_BOOT_LOG": "true",
        }
        with patch.dict(os.environ, env, clear=True):
            config = BuildConfig.from_settings(Settings())

        assert config.accel_mode is AccelMode.HARDWARE
        assert config.effective_boot_timeout_seconds == 300.0
        assert config.max_consecutive_query_errors == 20
        assert config.keep_boot_log is True

    def test_prefixed_variable_wins(self) -> None:
        env = {
            "PREBAKE_INSTANCE_ID": "preferred",
            "AVD_ID": "fallback",
            "ANDROID_SDK_ROOT": "/sdk",
            "API_LEVEL": "34",
            "SYSTEM_IMAGE": SYSTEM_IMAGE,
        }
        with patch.dict(os.environ, env, clear=True):
            config = BuildConfig.from_settings(Settings())
        assert config.instance_id == "preferred"

    def test_overrides_win_over_environment(self) -> None:
        env = {"ANDROID_SDK_ROOT": "/sdk", "AVD_ID": "demo34", "API_LEVEL": "34", "SYSTEM_IMAGE": SYSTEM_IMAGE}
        with patch.dict(os.environ, env, clear=True):
            config = BuildConfig.from_settings(Settings(), api_level=35, instance_id=None)

        assert config.api_level == 35
        # None overrides fall through
        assert config.instance_id == "demo34"

    def test_missing_identity_rejected(self) -> None:
        with patch.dict(os.environ, {"ANDROID_SDK_ROOT": "/sdk"}, clear=True), pytest.raises(ValidationError):
            BuildConfig.from_settings(Settings())

    def test_invalid_accel_mode_in_environment(self) -> None:
        with patch.dict(os.environ, {"PREBAKE_ACCEL_MODE": "turbo"}, clear=True), pytest.raises(ValidationError):
            Settings()
