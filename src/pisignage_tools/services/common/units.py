"""
piSignage Player Tools - systemd Units

Renders and installs the two one-shot units written during provisioning:

  force-hdmi-audio.service
      Persistent. Re-applies the HDMI mixer route on every boot.

  firstboot-identity-fix.service
      Self-destructing. Runs the first-boot identity routine once, then the
      routine disables the unit and deletes both the unit file and its
      executable.

The first-boot unit moves through FirstBootState:

  NOT_INSTALLED -> ARMED -> RUNNING -> COMPLETED

RUNNING only exists while the routine executes. COMPLETED is terminal until
provisioning installs the unit again.
"""

import logging
import os
import shlex
import sys
from enum import Enum
from typing import Optional

from pisignage_tools.constants import MIXER_COMMAND, SET_HOSTNAME_ENV
from .paths import FIRST_BOOT_UNIT_NAME, HDMI_AUDIO_UNIT_NAME, SystemPaths
from .results import StepResult, StepStatus
from .system import command_exists, daemon_reload, enable_unit, run_command

logger = logging.getLogger(__name__)

HDMI_AUDIO_UNIT_TEMPLATE = """\
[Unit]
Description=Force HDMI audio output
After=multi-user.target

[Service]
Type=oneshot
ExecStart=/bin/bash -lc 'command -v amixer >/dev/null 2>&1 && {mixer_command} || true'
RemainAfterExit=yes

[Install]
WantedBy=multi-user.target
"""

FIRST_BOOT_UNIT_TEMPLATE = """\
[Unit]
Description=First boot identity fix (machine-id + SSH keys)
After=network.target

[Service]
Type=oneshot
Environment={env_name}={set_hostname}
ExecStart={script}
RemainAfterExit=yes

[Install]
WantedBy=multi-user.target
"""

FIRST_BOOT_SCRIPT_TEMPLATE = """\
#!{python}
# Installed by pisignage-golden-setup. Runs once, then deletes itself.
from pisignage_tools.services.pisignage_first_boot import main

main()
"""


class FirstBootState(Enum):
    NOT_INSTALLED = "not-installed"
    ARMED = "armed"
    RUNNING = "running"
    COMPLETED = "completed"


def render_hdmi_audio_unit() -> str:
    return HDMI_AUDIO_UNIT_TEMPLATE.format(mixer_command=' '.join(MIXER_COMMAND))


def render_first_boot_unit(paths: SystemPaths, set_hostname: bool) -> str:
    return FIRST_BOOT_UNIT_TEMPLATE.format(
        env_name=SET_HOSTNAME_ENV,
        set_hostname='true' if set_hostname else 'false',
        script=paths.first_boot_script,
    )


def render_first_boot_script(python: Optional[str] = None) -> str:
    return FIRST_BOOT_SCRIPT_TEMPLATE.format(python=python or sys.executable)


def force_hdmi_audio_now() -> StepResult:
    """Route audio to HDMI immediately; some images lack the control."""
    logger.info(f"Forcing audio output to HDMI ({shlex.join(MIXER_COMMAND)})...")
    if not command_exists(MIXER_COMMAND[0]):
        logger.warning(f"{MIXER_COMMAND[0]} not found. Skipping.")
        return StepResult('hdmi-audio-now', StepStatus.WARNING, f"{MIXER_COMMAND[0]} not found")

    run_command(MIXER_COMMAND, quiet=True)
    logger.info("  - amixer set attempted (OK if not supported on some images).")
    return StepResult('hdmi-audio-now', StepStatus.OK, "mixer set attempted")


def install_hdmi_audio_unit(paths: SystemPaths) -> StepResult:
    """Write and enable the persistent HDMI audio unit."""
    logger.info("Installing persistent HDMI audio systemd service...")
    unit = paths.hdmi_audio_unit
    content = render_hdmi_audio_unit()
    before = unit.read_text() if unit.exists() else None

    unit.parent.mkdir(parents=True, exist_ok=True)
    unit.write_text(content)

    daemon_reload()
    enable_unit(HDMI_AUDIO_UNIT_NAME)

    status = StepStatus.OK if before == content else StepStatus.CHANGED
    return StepResult('hdmi-audio-unit', status, path=unit, before=before, after=content)


def first_boot_state(paths: SystemPaths) -> FirstBootState:
    """Derive the first-boot unit state from what is on disk."""
    if paths.first_boot_complete_flag.exists():
        return FirstBootState.COMPLETED
    if paths.first_boot_unit.exists():
        return FirstBootState.ARMED
    return FirstBootState.NOT_INSTALLED


def install_first_boot_unit(paths: SystemPaths, set_hostname: bool, python: Optional[str] = None) -> StepResult:
    """
    Arm the first-boot identity routine.

    Writes the executable and the unit, clears any completion flag left by an
    earlier run, and enables the unit for the next boot.

    Args:
        paths: System layout
        set_hostname: Whether the routine should apply the serial hostname
        python: Interpreter for the executable's shebang (defaults to the
                current one so the installed venv is reused)
    """
    logger.info("Installing first-boot identity regeneration (machine-id + SSH keys)...")
    previous = first_boot_state(paths)

    script = paths.first_boot_script
    unit = paths.first_boot_unit
    script_content = render_first_boot_script(python)
    unit_content = render_first_boot_unit(paths, set_hostname)
    unchanged = (
        previous is FirstBootState.ARMED
        and script.exists() and script.read_text() == script_content
        and unit.read_text() == unit_content
    )

    script.parent.mkdir(parents=True, exist_ok=True)
    script.write_text(script_content)
    os.chmod(script, 0o755)

    unit.parent.mkdir(parents=True, exist_ok=True)
    unit.write_text(unit_content)

    # Re-arming after a completed run
    if paths.first_boot_complete_flag.exists():
        paths.first_boot_complete_flag.unlink()

    daemon_reload()
    enable_unit(FIRST_BOOT_UNIT_NAME)

    logger.info(f"  - {FIRST_BOOT_UNIT_NAME}: {previous.value} -> {FirstBootState.ARMED.value}")
    status = StepStatus.OK if unchanged else StepStatus.CHANGED
    return StepResult('first-boot-unit', status, f"armed (was {previous.value})", path=unit)
