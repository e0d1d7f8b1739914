"""
Tests for pisignage_tools.services.common.boot_config module.
"""

from pisignage_tools.services.common.boot_config import (
    append_settings,
    ensure_hdmi_audio,
    missing_settings,
)
from pisignage_tools.services.common.results import StepStatus


class TestMissingSettings:
    """Tests for detecting absent boot settings."""

    def test_all_missing(self):
        assert missing_settings(["dtparam=audio=on"]) == ["hdmi_drive=2", "hdmi_force_hotplug=1"]

    def test_commented_setting_counts_as_missing(self):
        assert missing_settings(["#hdmi_drive=2", "hdmi_force_hotplug=1"]) == ["hdmi_drive=2"]

    def test_none_missing(self):
        assert missing_settings(["hdmi_force_hotplug=1", "hdmi_drive=2"]) == []


class TestEnsureHdmiAudio:
    """Tests for the boot config step."""

    def test_appends_missing_settings_once(self, device):
        original = device.boot_config.read_text()

        result = ensure_hdmi_audio(device)

        assert result.status is StepStatus.CHANGED
        text = device.boot_config.read_text()
        assert text.startswith(original)
        lines = text.splitlines()
        assert lines.count("hdmi_drive=2") == 1
        assert lines.count("hdmi_force_hotplug=1") == 1
        assert lines[-2:] == ["hdmi_drive=2", "hdmi_force_hotplug=1"]

    def test_second_run_changes_nothing(self, device):
        ensure_hdmi_audio(device)
        once = device.boot_config.read_text()

        result = ensure_hdmi_audio(device)

        assert result.status is StepStatus.OK
        assert device.boot_config.read_text() == once

    def test_already_configured_file_untouched(self, paths):
        paths.boot_config.parent.mkdir(parents=True)
        content = "hdmi_force_hotplug=1\narm_64bit=1\nhdmi_drive=2\n"
        paths.boot_config.write_text(content)

        result = ensure_hdmi_audio(paths)

        assert result.status is StepStatus.OK
        assert paths.boot_config.read_text() == content

    def test_missing_trailing_newline(self, paths):
        paths.boot_config.parent.mkdir(parents=True)
        paths.boot_config.write_text("dtparam=audio=on")

        append_settings(paths.boot_config)

        assert paths.boot_config.read_text() == "dtparam=audio=on\nhdmi_drive=2\nhdmi_force_hotplug=1\n"

    def test_legacy_boot_config_used(self, paths):
        paths.legacy_boot_config.parent.mkdir(parents=True)
        paths.legacy_boot_config.write_text("dtparam=audio=on\n")

        result = ensure_hdmi_audio(paths)

        assert result.path == paths.legacy_boot_config
        assert "hdmi_drive=2" in paths.legacy_boot_config.read_text()

    def test_primary_preferred_over_legacy(self, paths):
        paths.boot_config.parent.mkdir(parents=True)
        paths.boot_config.write_text("")
        paths.legacy_boot_config.write_text("# moved to /boot/firmware\n")

        ensure_hdmi_audio(paths)

        assert paths.boot_config.read_text() == "hdmi_drive=2\nhdmi_force_hotplug=1\n"
        assert paths.legacy_boot_config.read_text() == "# moved to /boot/firmware\n"

    def test_no_boot_config_is_warning(self, paths):
        result = ensure_hdmi_audio(paths)

        assert result.status is StepStatus.WARNING
        assert not paths.legacy_boot_config.exists()
