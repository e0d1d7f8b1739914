"""
piSignage First Boot Identity Fix

Runs once, from firstboot-identity-fix.service, on the first boot of a card
cloned from a golden image. It gives the device its own identity:
1. Fresh machine-id
2. SSH host keys (only if the image shipped without any)
3. Restart of ssh so the new host keys are served
4. Optional hostname pisignage-<last6serial> and matching /etc/hosts entry

Every step is best effort: a failure is logged and the next step still runs.
Whatever happens, the routine then marks itself complete, disables its unit
and deletes both the unit file and its own executable, so it can never run
again on this card.
"""

import os
import sys
from typing import Optional

from pisignage_tools.constants import SET_HOSTNAME_ENV
from .common.identity import (
    apply_serial_hostname,
    regenerate_machine_id,
    regenerate_ssh_host_keys,
)
from .common.logging_config import setup_service_logging, log_service_start
from .common.paths import DEFAULT_PATHS, FIRST_BOOT_UNIT_NAME, SystemPaths
from .common.system import (
    daemon_reload,
    disable_unit,
    get_systemd_notifier,
    remove_files,
    restart_service,
)
from .common.units import FirstBootState, first_boot_state

logger = setup_service_logging('pisignage-first-boot')

SSH_SERVICE = 'ssh'


def hostname_enabled(environ: Optional[dict] = None) -> bool:
    """Read SET_HOSTNAME_ON_FIRSTBOOT from the unit environment (default true)."""
    environ = os.environ if environ is None else environ
    return environ.get(SET_HOSTNAME_ENV, 'true').strip().lower() == 'true'


def _attempt(description: str, action) -> bool:
    """Run one best-effort action, logging instead of raising."""
    try:
        result = action()
    except Exception as e:
        logger.exception(f"{description} failed: {e}")
        return False
    if result is False or result is None:
        logger.warning(f"{description} did not complete")
        return False
    return True


def self_destruct(paths: SystemPaths) -> None:
    """Mark complete, disable the unit and delete the unit and executable."""
    try:
        paths.first_boot_complete_flag.parent.mkdir(parents=True, exist_ok=True)
        paths.first_boot_complete_flag.touch()
        logger.info(f"Created completion flag: {paths.first_boot_complete_flag}")
    except OSError as e:
        logger.error(f"Could not create completion flag: {e}")

    disable_unit(FIRST_BOOT_UNIT_NAME)

    try:
        removed = remove_files([paths.first_boot_unit, paths.first_boot_script])
        for path in removed:
            logger.info(f"Removed {path}")
    except OSError as e:
        logger.error(f"Could not remove first-boot files: {e}")

    daemon_reload()


def run_first_boot(paths: SystemPaths = DEFAULT_PATHS, set_hostname: bool = True) -> FirstBootState:
    """
    Execute the first boot identity regeneration.

    Returns:
        The state the routine ends in: COMPLETED, or COMPLETED unchanged if
        it had already run.
    """
    log_service_start(logger, 'piSignage First Boot Identity Fix')
    sd_notifier = get_systemd_notifier()

    state = first_boot_state(paths)
    if state is FirstBootState.COMPLETED:
        logger.info("First boot already completed, skipping")
        return state

    logger.info(f"State: {state.value} -> {FirstBootState.RUNNING.value}")
    results = {}

    sd_notifier.notify("STATUS=Regenerating machine-id...")
    results['machine-id'] = _attempt("machine-id regeneration", lambda: regenerate_machine_id(paths))

    sd_notifier.notify("STATUS=Checking SSH host keys...")
    results['ssh-host-keys'] = _attempt("SSH host key regeneration", lambda: regenerate_ssh_host_keys(paths))

    results['ssh-restart'] = _attempt("ssh restart", lambda: restart_service(SSH_SERVICE))

    if set_hostname:
        sd_notifier.notify("STATUS=Setting hostname...")
        results['hostname'] = _attempt("Hostname assignment", lambda: apply_serial_hostname(paths))
    else:
        logger.info("Hostname assignment disabled")

    sd_notifier.notify("STATUS=Removing first boot unit...")
    self_destruct(paths)

    logger.info("=" * 60)
    logger.info("piSignage First Boot Identity Fix Completed")
    for name, ok in results.items():
        logger.info(f"  {name}: {'OK' if ok else 'FAILED'}")
    logger.info("=" * 60)
    sd_notifier.notify("STATUS=First boot complete")

    return first_boot_state(paths)


def main():
    """Entry point for the service."""
    try:
        run_first_boot(DEFAULT_PATHS, hostname_enabled())
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Unhandled exception in first boot service: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
