"""
Shared fixtures: a fake Raspberry Pi file system rooted in tmp_path and a
recorder standing in for every external command.
"""

import json
import subprocess
from unittest.mock import patch

import pytest

from pisignage_tools.services.common.paths import SystemPaths

BOOT_CONFIG = """\
# For more options and information see
# http://rpf.io/configtxt
dtparam=audio=on
camera_auto_detect=1
"""

PACKAGE_JSON = {
    "name": "piSignage",
    "version": "2.9.1",
    "config_server": "https://old.example.com",
    "media_server": "https://old.example.com",
    "dependencies": {"express": "^4.17.1"},
}

SETTINGS_JSON = {
    "server": "https://old.example.com",
    "orientation": "landscape",
    "volume": 80,
}

CPUINFO = """\
processor\t: 0
BogoMIPS\t: 108.00
Features\t: fp asimd evtstrm crc32 cpuid

Hardware\t: BCM2835
Revision\t: c03114
Serial\t\t: 10000000A1B2C3D4
Model\t\t: Raspberry Pi 4 Model B Rev 1.4
"""

HOSTS = """\
127.0.0.1\tlocalhost
::1\t\tlocalhost ip6-localhost ip6-loopback
127.0.1.1\traspberrypi
"""

GOLDEN_MACHINE_ID = "5f1a2b3c4d5e6f708192a3b4c5d6e7f8"
NEW_MACHINE_ID = "0123456789abcdef0123456789abcdef"


@pytest.fixture
def paths(tmp_path):
    return SystemPaths().under(tmp_path)


@pytest.fixture
def device(paths):
    """A provisioned-looking Pi: boot config, player JSON, identity files."""
    paths.boot_config.parent.mkdir(parents=True)
    paths.boot_config.write_text(BOOT_CONFIG)

    paths.package_json.parent.mkdir(parents=True)
    paths.package_json.write_text(json.dumps(PACKAGE_JSON, indent=2) + "\n")
    paths.settings_json.parent.mkdir(parents=True)
    paths.settings_json.write_text(json.dumps(SETTINGS_JSON, indent=4) + "\n")

    paths.ssh_dir.mkdir(parents=True)
    for name in ("ssh_host_rsa_key", "ssh_host_rsa_key.pub",
                 "ssh_host_ed25519_key", "ssh_host_ed25519_key.pub"):
        (paths.ssh_dir / name).write_text("key\n")
    (paths.ssh_dir / "sshd_config").write_text("PermitRootLogin no\n")

    paths.machine_id.write_text(GOLDEN_MACHINE_ID + "\n")
    paths.dbus_machine_id.parent.mkdir(parents=True)
    paths.dbus_machine_id.write_text(GOLDEN_MACHINE_ID + "\n")

    (paths.journal_dir / GOLDEN_MACHINE_ID).mkdir(parents=True)
    (paths.journal_dir / GOLDEN_MACHINE_ID / "system.journal").write_text("log")

    paths.cpuinfo.parent.mkdir(parents=True)
    paths.cpuinfo.write_text(CPUINFO)
    paths.hosts.write_text(HOSTS)

    return paths


class CommandRecorder:
    """Replacement for subprocess.run that records commands and fakes their effects."""

    def __init__(self, paths):
        self.paths = paths
        self.calls = []
        self.failing = set()

    def fail(self, *names):
        self.failing.update(names)

    def ran(self, *prefix):
        return any(tuple(cmd[:len(prefix)]) == prefix for cmd in self.calls)

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        if cmd[0] in self.failing:
            return subprocess.CompletedProcess(cmd, 1, "", f"{cmd[0]}: failed")

        if cmd[0] == "systemd-machine-id-setup":
            self.paths.machine_id.write_text(NEW_MACHINE_ID + "\n")
        elif cmd[:2] == ["dpkg-reconfigure", "openssh-server"] or cmd[:2] == ["ssh-keygen", "-A"]:
            for name in ("ssh_host_ed25519_key", "ssh_host_ed25519_key.pub"):
                (self.paths.ssh_dir / name).write_text("fresh\n")
        return subprocess.CompletedProcess(cmd, 0, "", "")


@pytest.fixture
def commands(paths):
    recorder = CommandRecorder(paths)
    with patch("pisignage_tools.services.common.system.subprocess.run", side_effect=recorder), \
            patch("pisignage_tools.services.common.system.shutil.which", return_value="/usr/bin/amixer"), \
            patch("pisignage_tools.services.common.system.os.sync"):
        yield recorder
