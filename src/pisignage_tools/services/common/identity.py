"""
piSignage Player Tools - Machine Identity

Everything that makes one player distinguishable from another card cloned
from the same golden image: machine-id, SSH host keys, and the hostname
derived from the Pi's CPU serial.
"""

import logging
import shutil
import uuid
from pathlib import Path
from typing import List, Optional

from pisignage_tools.constants import HOSTNAME_PREFIX, HOSTNAME_SERIAL_CHARS
from .paths import SystemPaths
from .system import (
    SLOW_COMMAND_TIMEOUT,
    remove_files,
    run_command,
    shutdown_now,
    sync_filesystems,
)

logger = logging.getLogger(__name__)

HOSTS_SELF_ADDRESS = '127.0.1.1'


# =============================================================================
# Hostname
# =============================================================================

def read_cpu_serial(paths: SystemPaths) -> Optional[str]:
    """
    Read the CPU serial number from /proc/cpuinfo.

    Returns:
        The value of the last 'Serial' line, or None if there is none.
    """
    try:
        text = paths.cpuinfo.read_text(errors='ignore')
    except OSError as e:
        logger.warning(f"Could not read {paths.cpuinfo}: {e}")
        return None

    serial = None
    for line in text.splitlines():
        if ':' not in line:
            continue
        key, value = line.split(':', 1)
        if key.strip() == 'Serial' and value.strip():
            serial = value.strip()
    return serial


def hostname_from_serial(serial: str) -> str:
    """pisignage-<last six serial characters>, lowercased for DNS."""
    return f"{HOSTNAME_PREFIX}{serial[-HOSTNAME_SERIAL_CHARS:].lower()}"


def update_hosts_entry(paths: SystemPaths, hostname: str) -> bool:
    """
    Point the 127.0.1.1 line of /etc/hosts at hostname.

    Without this entry sudo warns "unable to resolve host" after the
    hostname changes. An existing 127.0.1.1 line is replaced in place and
    duplicates dropped; otherwise one is appended.

    Returns:
        True if the file was modified.
    """
    entry = f"{HOSTS_SELF_ADDRESS}\t{hostname}"
    lines = paths.hosts.read_text().splitlines() if paths.hosts.exists() else []

    new_lines = []
    replaced = False
    for line in lines:
        fields = line.split()
        if fields and fields[0] == HOSTS_SELF_ADDRESS:
            if not replaced:
                new_lines.append(entry)
                replaced = True
            continue
        new_lines.append(line)
    if not replaced:
        new_lines.append(entry)

    if new_lines == lines:
        return False
    paths.hosts.write_text('\n'.join(new_lines) + '\n')
    logger.info(f"Updated {paths.hosts}: {entry}")
    return True


def set_hostname(hostname: str) -> bool:
    logger.info(f"Setting hostname to {hostname}")
    return run_command(['hostnamectl', 'set-hostname', hostname])


def apply_serial_hostname(paths: SystemPaths) -> Optional[str]:
    """
    Derive the hostname from the CPU serial and apply it.

    Returns:
        The hostname that was applied, or None if no serial was found or
        hostnamectl failed.
    """
    serial = read_cpu_serial(paths)
    if not serial:
        logger.warning("No CPU serial found; leaving hostname unchanged")
        return None

    hostname = hostname_from_serial(serial)
    if not set_hostname(hostname):
        return None
    update_hosts_entry(paths, hostname)
    return hostname


# =============================================================================
# machine-id
# =============================================================================

def read_machine_id(paths: SystemPaths) -> str:
    try:
        return paths.machine_id.read_text().strip()
    except FileNotFoundError:
        return ''


def regenerate_machine_id(paths: SystemPaths) -> str:
    """
    Replace the machine-id with a fresh one.

    systemd-machine-id-setup only initialises an empty id, so the current
    one is cleared first. If the tool is unavailable a random id is written
    directly. The D-Bus copy is re-linked to /etc/machine-id.

    Returns:
        The new machine-id.
    """
    paths.machine_id.parent.mkdir(parents=True, exist_ok=True)
    paths.machine_id.write_text('')
    remove_files([paths.dbus_machine_id])

    run_command(['systemd-machine-id-setup'])

    machine_id = read_machine_id(paths)
    if not machine_id:
        logger.warning("systemd-machine-id-setup did not produce an id; writing one directly")
        machine_id = uuid.uuid4().hex
        paths.machine_id.write_text(f"{machine_id}\n")

    if paths.dbus_machine_id.parent.is_dir() and not paths.dbus_machine_id.exists():
        paths.dbus_machine_id.symlink_to(paths.machine_id)

    logger.info(f"machine-id: {machine_id}")
    return machine_id


# =============================================================================
# SSH host keys
# =============================================================================

def regenerate_ssh_host_keys(paths: SystemPaths) -> bool:
    """
    Generate SSH host keys if none exist.

    Returns:
        True if host keys exist afterwards.
    """
    if paths.ssh_host_keys():
        logger.info("SSH host keys already exist")
        return True

    logger.info("Generating SSH host keys...")
    if not run_command(['dpkg-reconfigure', 'openssh-server'], timeout=SLOW_COMMAND_TIMEOUT):
        logger.warning("dpkg-reconfigure openssh-server failed; falling back to ssh-keygen -A")
        run_command(['ssh-keygen', '-A'], timeout=SLOW_COMMAND_TIMEOUT)

    if not paths.ssh_host_keys():
        logger.error("No SSH host keys after regeneration")
        return False
    return True


# =============================================================================
# Clone preparation
# =============================================================================

def clear_journal(paths: SystemPaths) -> None:
    """Best-effort removal of everything under the journal directory."""
    if not paths.journal_dir.is_dir():
        return
    for entry in paths.journal_dir.iterdir():
        try:
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
        except OSError as e:
            logger.warning(f"Could not remove {entry}: {e}")


def wipe_identity(paths: SystemPaths) -> List[Path]:
    """
    Remove SSH host keys and machine-id so the next boot regenerates them.

    Returns:
        The files that were deleted.
    """
    removed = remove_files(paths.ssh_host_keys())
    if paths.machine_id.exists():
        paths.machine_id.write_text('')
    removed += remove_files([paths.dbus_machine_id])
    # A completion flag would stop the first-boot routine on every clone
    removed += remove_files([paths.first_boot_complete_flag])
    return removed


def prepare_for_clone(paths: SystemPaths) -> bool:
    """
    Strip this device's identity and power off for imaging.

    Returns:
        True if the shutdown command was accepted.
    """
    logger.info("Wiping SSH host keys and machine-id so each cloned Pi regenerates unique identity...")
    removed = wipe_identity(paths)
    logger.info(f"  - Removed {len(removed)} identity file(s)")

    clear_journal(paths)
    sync_filesystems()

    logger.info("Shutdown now. When it's fully off, remove SD card and image/clone it.")
    return shutdown_now()
