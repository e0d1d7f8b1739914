"""
piSignage Player Tools - Boot Configuration

Ensures the Raspberry Pi boot config enables HDMI audio. Lines are only
ever appended, so running this repeatedly never duplicates a setting.
"""

import logging
from pathlib import Path
from typing import Iterable, List

from pisignage_tools.constants import HDMI_BOOT_SETTINGS
from .paths import SystemPaths
from .results import StepResult, StepStatus

logger = logging.getLogger(__name__)

STEP_NAME = 'boot-config'


def missing_settings(lines: Iterable[str], settings: Iterable[str] = HDMI_BOOT_SETTINGS) -> List[str]:
    """Return the settings with no line starting with their exact text."""
    lines = list(lines)
    return [s for s in settings if not any(line.startswith(s) for line in lines)]


def append_settings(path: Path, settings: Iterable[str] = HDMI_BOOT_SETTINGS) -> List[str]:
    """
    Append every setting not yet present in path.

    Returns:
        The settings that were appended (empty if none were missing).
    """
    text = path.read_text()
    to_add = missing_settings(text.splitlines(), settings)
    if not to_add:
        return []

    with path.open('a') as f:
        if text and not text.endswith('\n'):
            f.write('\n')
        for setting in to_add:
            f.write(f"{setting}\n")
    return to_add


def ensure_hdmi_audio(paths: SystemPaths) -> StepResult:
    """
    Force HDMI audio and hotplug in the boot config.

    A missing boot config is tolerated: the image may not be a Pi.
    """
    boot_config = paths.resolve_boot_config()
    if not boot_config.exists():
        logger.warning(f"{boot_config} not found. Skipping boot HDMI force.")
        return StepResult(STEP_NAME, StepStatus.WARNING, f"{boot_config} not found", path=boot_config)

    logger.info(f"Updating {boot_config} for HDMI audio...")
    before = boot_config.read_text()
    added = append_settings(boot_config)
    logger.info(f"  - Ensured: {', '.join(HDMI_BOOT_SETTINGS)}")

    if not added:
        return StepResult(STEP_NAME, StepStatus.OK, "already configured", path=boot_config)
    return StepResult(
        STEP_NAME,
        StepStatus.CHANGED,
        f"appended {', '.join(added)}",
        path=boot_config,
        before=before,
        after=boot_config.read_text(),
    )
