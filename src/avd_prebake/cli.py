"""Command-line interface for avd-prebake.

Usage:
    avd-prebake --instance-id mag_mobile_preview_api_34 --api-level 34 \\
        --system-image 'system-images;android-34;default;x86_64' \\
        --instance-root /opt/android-sdk-linux --accel hardware

    # Inside the container build, the environment carries the same values:
    ANDROID_SDK_ROOT=... AVD_ID=... API_LEVEL=... SYSTEM_IMAGE=... avd-prebake
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from pydantic import ValidationError

from avd_prebake import __version__
from avd_prebake._logging import configure_logging
from avd_prebake.config import BuildConfig
from avd_prebake.exceptions import (
    BootTimeout,
    ControlChannelLost,
    LaunchFailure,
    PrebakeError,
    ProcessDied,
    SentinelError,
    SnapshotMissing,
)
from avd_prebake.models import AccelMode, BuildResult
from avd_prebake.settings import Settings
from avd_prebake.supervisor import run_prebake

# Exit codes following Unix conventions
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CLI_ERROR = 2
EXIT_SNAPSHOT_MISSING = 3
EXIT_TIMEOUT = 124  # Matches `timeout` command
EXIT_PROCESS_DIED = 125
EXIT_LAUNCH_FAILURE = 126  # Matches shell "command cannot execute"


def format_error(
    title: str,
    message: str,
    suggestions: list[str] | None = None,
    details: tuple[str, str] | None = None,
) -> str:
    """Format an error message following What → Why → Fix pattern.

    Args:
        title: Short error title
        message: Detailed explanation
        suggestions: Optional list of suggestions to fix the issue
        details: Optional (heading, body) block, e.g. the emulator log tail

    Returns:
        Formatted error string
    """
    lines = [
        click.style(f"Error: {title}", fg="red", bold=True),
        "",
        f"  {message}",
    ]

    if details is not None:
        heading, body = details
        lines.extend(["", f"--- {heading} ---", body, "---"])

    if suggestions:
        lines.extend(["", "  Suggestions:"])
        lines.extend(f"    • {suggestion}" for suggestion in suggestions)

    return "\n".join(lines)


def format_result_json(result: BuildResult) -> str:
    return json.dumps(result.model_dump(mode="json"), indent=2)


def report_failure(error: PrebakeError, config: BuildConfig) -> int:
    """Print a diagnostic for ``error`` and return the matching exit code."""
    tail_heading = f"Last {config.log_tail_lines} lines of emulator log"

    if isinstance(error, LaunchFailure):
        click.echo(
            format_error(
                "Emulator failed to start",
                error.message,
                [
                    f"Check that '{config.emulator_bin}' is on PATH",
                    "For --accel hardware, run the container with --device /dev/kvm",
                ],
            ),
            err=True,
        )
        return EXIT_LAUNCH_FAILURE

    if isinstance(error, ProcessDied):
        exit_clause = f" (exit code {error.exit_code})" if error.exit_code is not None else ""
        click.echo(
            format_error(
                "Emulator process died during boot",
                f"{error.message}{exit_clause}.",
                ["Inspect the log below for emulator or system image errors"],
                details=(tail_heading, error.log_tail),
            ),
            err=True,
        )
        return EXIT_PROCESS_DIED

    if isinstance(error, ControlChannelLost):
        click.echo(
            format_error(
                "Control channel unreachable",
                f"{error.message}. adb could not reach the emulator.",
                [f"Check that '{config.adb_bin}' works and the serial is correct"],
                details=(tail_heading, error.log_tail),
            ),
            err=True,
        )
        return EXIT_TIMEOUT

    if isinstance(error, BootTimeout):
        click.echo(
            format_error(
                "Emulator boot timed out",
                f"{error.message}; the emulator was terminated.",
                [
                    "Increase the deadline with --boot-timeout",
                    "Software emulation boots take 10+ minutes",
                ],
                details=(tail_heading, error.log_tail),
            ),
            err=True,
        )
        return EXIT_TIMEOUT

    if isinstance(error, SnapshotMissing):
        click.echo(
            format_error(
                "Snapshot not saved",
                f"Expected {error.expected_path}; no sentinel was written.",
                ["Check that fastboot.forceColdBoot=no in the AVD config.ini"],
                details=(f"Contents of {error.expected_path.parent}", error.listing),
            ),
            err=True,
        )
        return EXIT_SNAPSHOT_MISSING

    if isinstance(error, SentinelError):
        click.echo(
            format_error(
                "Sentinel not written",
                f"{error.message}. The snapshot was saved but the image is not marked as prebaked.",
                [f"Check that {config.instance_root} is a writable directory"],
            ),
            err=True,
        )
        return EXIT_FAILURE

    click.echo(format_error("Prebake failed", error.message), err=True)
    return EXIT_FAILURE


async def run_build(config: BuildConfig, json_output: bool) -> int:
    """Run the pipeline and return the exit code."""
    try:
        result = await run_prebake(config)
    except PrebakeError as e:
        return report_failure(e, config)

    if json_output:
        click.echo(format_result_json(result))
    else:
        click.echo(
            click.style(
                f"✓ Snapshot saved in {result.boot_seconds:.0f}s boot ({result.polls} polls): {result.sentinel_path}",
                fg="green",
            ),
            err=True,
        )
    return EXIT_SUCCESS


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--instance-root", type=click.Path(path_type=Path), help="SDK root; the sentinel is written here")
@click.option("--avd-home", "instance_avd_home", type=click.Path(path_type=Path), help="AVD storage root")
@click.option("--instance-id", help="AVD name")
@click.option("--api-level", type=int, help="Android API level")
@click.option("--system-image", "system_image_ref", help="System image package reference")
@click.option("--arch", help="ABI recorded in the sentinel (default: from system image)")
@click.option(
    "--accel",
    "accel_mode",
    type=click.Choice([m.value for m in AccelMode], case_sensitive=False),
    help="Acceleration mode; must match the host that resumes the snapshot",
)
@click.option("--boot-timeout", "boot_timeout_seconds", type=float, help="Boot deadline in seconds")
@click.option("--poll-interval", "poll_interval_seconds", type=float, help="Seconds between readiness polls")
@click.option("--grace", "shutdown_grace_seconds", type=float, help="Seconds to wait for exit after shutdown")
@click.option("--adb-serial", help="adb device serial (e.g. emulator-5554)")
@click.option("--boot-log", "boot_log_path", type=click.Path(path_type=Path), help="Emulator log file")
@click.option("--keep-log", "keep_boot_log", is_flag=True, help="Keep the boot log on success")
@click.option("--json", "json_output", is_flag=True, help="Print the build result as JSON")
@click.option("-q", "--quiet", is_flag=True, help="Only print errors")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
@click.version_option(__version__, "-V", "--version", prog_name="avd-prebake")
def main(
    json_output: bool,
    quiet: bool,
    verbose: bool,
    **overrides: object,
) -> NoReturn:
    """Boot an AVD, save its Quick Boot snapshot and write the prebaked sentinel.

    Options override the environment (PREBAKE_* variables, or ANDROID_SDK_ROOT,
    ANDROID_AVD_HOME, AVD_ID, API_LEVEL, SYSTEM_IMAGE, BOOT_TIMEOUT).

    \b
    Exit codes:
      0    snapshot saved and sentinel written
      2    invalid configuration
      3    snapshot directory missing after shutdown
      124  boot timed out
      125  emulator died during boot
      126  emulator could not be started
    """
    configure_logging(level=logging.DEBUG if verbose else None, quiet=quiet)
    if not overrides.get("keep_boot_log"):
        overrides["keep_boot_log"] = None  # unset flag falls through to the environment

    try:
        config = BuildConfig.from_settings(Settings(), **overrides)
    except ValidationError as exc:
        problems = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        click.echo(
            format_error(
                "Invalid configuration",
                "The build configuration is incomplete or invalid.",
                problems,
            ),
            err=True,
        )
        sys.exit(EXIT_CLI_ERROR)

    exit_code = asyncio.run(run_build(config, json_output))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
