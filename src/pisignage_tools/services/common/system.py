"""
piSignage Player Tools - System Utilities

Functions for running external commands, systemd unit management,
privilege and single-instance checks, and powering the device off.
"""

import fcntl
import logging
import os
import shutil
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import sdnotify

from pisignage_tools.exceptions.already_running_exception import AlreadyRunningException
from pisignage_tools.exceptions.root_required_exception import RootRequiredException

logger = logging.getLogger(__name__)

# Shared systemd notifier instance
_sd_notifier: Optional[sdnotify.SystemdNotifier] = None

# Default timeouts
DEFAULT_COMMAND_TIMEOUT = 10  # seconds
DEFAULT_SERVICE_ACTION_TIMEOUT = 30  # seconds
# dpkg-reconfigure generates every host key type, which is slow on a Pi
SLOW_COMMAND_TIMEOUT = 180  # seconds


def get_systemd_notifier() -> sdnotify.SystemdNotifier:
    """
    Get the shared systemd notifier instance.

    Returns:
        SystemdNotifier instance for communicating with systemd.
    """
    global _sd_notifier
    if _sd_notifier is None:
        _sd_notifier = sdnotify.SystemdNotifier()
    return _sd_notifier


def command_exists(name: str) -> bool:
    return shutil.which(name) is not None


def run_command(cmd: Sequence[str], timeout: int = DEFAULT_COMMAND_TIMEOUT, quiet: bool = False) -> bool:
    """
    Run an external command and report whether it succeeded.

    Failures (non-zero exit, timeout, missing binary) are logged and
    returned as False, never raised.

    Args:
        cmd: Command and arguments
        timeout: Seconds before the command is abandoned
        quiet: Log failures at debug level instead of warning

    Returns:
        True if the command exited with status 0.
    """
    log = logger.debug if quiet else logger.warning
    printable = ' '.join(cmd)
    try:
        result = subprocess.run(
            list(cmd),
            capture_output=True,
            text=True,
            timeout=timeout
        )

        if result.returncode != 0:
            log(f"'{printable}' failed ({result.returncode}): {result.stderr.strip()}")
            return False

        return True

    except subprocess.TimeoutExpired:
        log(f"'{printable}' timed out after {timeout}s")
        return False
    except FileNotFoundError:
        log(f"{cmd[0]} not found")
        return False
    except Exception as e:
        log(f"Error running '{printable}': {e}")
        return False


def daemon_reload() -> bool:
    """Make systemd pick up created or deleted unit files."""
    return run_command(['systemctl', 'daemon-reload'], timeout=DEFAULT_SERVICE_ACTION_TIMEOUT)


def enable_unit(unit_name: str) -> bool:
    """
    Enable a systemd unit so it starts at boot.

    Args:
        unit_name: Name of the unit (e.g., 'force-hdmi-audio.service')

    Returns:
        True if the unit was enabled.
    """
    logger.info(f"Enabling {unit_name}...")
    if not run_command(['systemctl', 'enable', unit_name], timeout=DEFAULT_SERVICE_ACTION_TIMEOUT):
        logger.warning(f"Could not enable {unit_name}")
        return False
    return True


def disable_unit(unit_name: str) -> bool:
    """
    Disable a systemd unit so it no longer starts at boot.

    Args:
        unit_name: Name of the unit

    Returns:
        True if the unit was disabled.
    """
    logger.info(f"Disabling {unit_name}...")
    if not run_command(['systemctl', 'disable', unit_name], timeout=DEFAULT_SERVICE_ACTION_TIMEOUT):
        logger.warning(f"Could not disable {unit_name}")
        return False
    return True


def restart_service(service_name: str) -> bool:
    """
    Restart a systemd service.

    Args:
        service_name: Name of the service to restart

    Returns:
        True if service restarted successfully.
    """
    logger.info(f"Restarting {service_name}...")
    if not run_command(['systemctl', 'restart', service_name], timeout=DEFAULT_SERVICE_ACTION_TIMEOUT):
        logger.warning(f"Failed to restart {service_name}")
        return False

    logger.info(f"Successfully restarted {service_name}")
    return True


def require_root(program: str = 'pisignage-golden-setup') -> None:
    """Raise RootRequiredException unless running with an effective UID of 0."""
    if os.geteuid() != 0:
        raise RootRequiredException(program)


@contextmanager
def single_instance_lock(lock_path: Path) -> Iterator[None]:
    """
    Hold an exclusive flock on lock_path for the duration of the block.

    Raises:
        AlreadyRunningException: another process holds the lock.
    """
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(str(lock_path), os.O_RDWR | os.O_CREAT, 0o644)
    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            raise AlreadyRunningException(lock_path)
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)


def sync_filesystems() -> None:
    """Flush filesystem buffers so the card can be imaged safely."""
    os.sync()


def shutdown_now() -> bool:
    """Power the device off immediately."""
    logger.info("Shutting down now")
    return run_command(['shutdown', '-h', 'now'])


def remove_files(paths: List[Path]) -> List[Path]:
    """
    Delete files, ignoring ones that are already gone.

    Returns:
        The paths that were actually removed.
    """
    removed = []
    for path in paths:
        try:
            path.unlink()
            removed.append(path)
        except FileNotFoundError:
            pass
    return removed
