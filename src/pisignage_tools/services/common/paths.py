"""
piSignage Player Tools - Shared Path Constants

All file and directory paths touched by provisioning and the first-boot
routine are defined here.

File system layout on a Raspberry Pi OS player:
  /boot/firmware/config.txt      # Boot config (Bookworm)
  /boot/config.txt               # Boot config (Bullseye and older)
  /home/pi/
    ├── player2/package.json     # config_server, media_server
    ├── .pisignage/settings.json # server
    └── .pisignage/config.json   # optional, older player builds
  /etc/systemd/system/
    ├── force-hdmi-audio.service
    └── firstboot-identity-fix.service
  /usr/local/sbin/firstboot-identity-fix
  /var/lib/pisignage-tools/.first_boot_complete
  /etc/ssh/ssh_host_*            # SSH host keys
  /etc/machine-id
  /var/lib/dbus/machine-id

Every path lives on SystemPaths so the whole layout can be rebased under
another directory (a mounted image, or a test sandbox) with under().
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import List, Tuple

HDMI_AUDIO_UNIT_NAME = 'force-hdmi-audio.service'
FIRST_BOOT_UNIT_NAME = 'firstboot-identity-fix.service'

SSH_HOST_KEY_GLOB = 'ssh_host_*'


@dataclass(frozen=True)
class SystemPaths:
    # Boot configuration
    boot_config: Path = Path('/boot/firmware/config.txt')
    legacy_boot_config: Path = Path('/boot/config.txt')

    # Player configuration
    package_json: Path = Path('/home/pi/player2/package.json')
    settings_json: Path = Path('/home/pi/.pisignage/settings.json')
    fallback_config_files: Tuple[Path, ...] = (
        Path('/home/pi/.pisignage/config.json'),
        Path('/home/pi/.config/pisignage/config.json'),
        Path('/home/pi/.config/pisignage/settings.json'),
    )

    # systemd units and the first-boot executable
    systemd_dir: Path = Path('/etc/systemd/system')
    first_boot_script: Path = Path('/usr/local/sbin/firstboot-identity-fix')
    state_dir: Path = Path('/var/lib/pisignage-tools')

    # Machine identity
    ssh_dir: Path = Path('/etc/ssh')
    machine_id: Path = Path('/etc/machine-id')
    dbus_machine_id: Path = Path('/var/lib/dbus/machine-id')
    journal_dir: Path = Path('/var/log/journal')
    cpuinfo: Path = Path('/proc/cpuinfo')
    hosts: Path = Path('/etc/hosts')

    # Single-instance lock for the provisioning run
    lock_file: Path = Path('/run/pisignage-golden-setup.lock')

    @property
    def hdmi_audio_unit(self) -> Path:
        return self.systemd_dir / HDMI_AUDIO_UNIT_NAME

    @property
    def first_boot_unit(self) -> Path:
        return self.systemd_dir / FIRST_BOOT_UNIT_NAME

    @property
    def first_boot_complete_flag(self) -> Path:
        return self.state_dir / '.first_boot_complete'

    def ssh_host_keys(self) -> List[Path]:
        """Existing SSH host key files (private and public)."""
        if not self.ssh_dir.is_dir():
            return []
        return sorted(self.ssh_dir.glob(SSH_HOST_KEY_GLOB))

    def resolve_boot_config(self) -> Path:
        """Bookworm keeps config.txt under /boot/firmware; fall back to /boot."""
        if self.boot_config.exists():
            return self.boot_config
        return self.legacy_boot_config

    def under(self, root: Path) -> 'SystemPaths':
        """Return a copy of these paths rebased under root."""
        root = Path(root)

        def rebase(path: Path) -> Path:
            return root / path.relative_to(path.anchor)

        changes = {}
        for field in fields(self):
            value = getattr(self, field.name)
            if isinstance(value, tuple):
                changes[field.name] = tuple(rebase(p) for p in value)
            else:
                changes[field.name] = rebase(value)
        return SystemPaths(**changes)


DEFAULT_PATHS = SystemPaths()
