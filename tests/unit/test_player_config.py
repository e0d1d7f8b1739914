"""
Tests for pisignage_tools.services.common.player_config module.
"""

import json

import pytest

from pisignage_tools.exceptions.player_config_exception import (
    PlayerConfigException,
    PlayerConfigNotFoundException,
)
from pisignage_tools.services.common.player_config import (
    detect_indent,
    replace_server_values,
    set_server_url,
)
from pisignage_tools.services.common.results import StepStatus

SERVER = "https://signage.example.com/path?a=1&b=/2"


class TestDetectIndent:
    """Tests for indentation detection."""

    def test_two_spaces(self):
        assert detect_indent('{\n  "a": 1\n}') == 2

    def test_tabs(self):
        assert detect_indent('{\n\t"a": 1\n}') == "\t"

    def test_single_line(self):
        assert detect_indent('{"a": 1}') is None


class TestReplaceServerValues:
    """Tests for the in-place document walk."""

    def test_nested_keys_replaced(self):
        document = {"player": {"server": "old"}, "list": [{"server": "old"}]}

        matched, changed = replace_server_values(document, ["server"], "new")

        assert (matched, changed) == (2, 2)
        assert document == {"player": {"server": "new"}, "list": [{"server": "new"}]}

    def test_non_string_values_ignored(self):
        document = {"server": {"host": "old"}, "media_server": None}

        matched, changed = replace_server_values(document, ["server", "media_server"], "new")

        assert (matched, changed) == (0, 0)
        assert document == {"server": {"host": "old"}, "media_server": None}

    def test_similar_key_names_untouched(self):
        document = {"servers": "old", "my_server": "old"}

        replace_server_values(document, ["server"], "new")

        assert document == {"servers": "old", "my_server": "old"}


class TestSetServerUrl:
    """Tests for server URL propagation."""

    def test_all_keys_point_at_server(self, device):
        set_server_url(device, SERVER)

        package = json.loads(device.package_json.read_text())
        settings = json.loads(device.settings_json.read_text())
        assert package["config_server"] == SERVER
        assert package["media_server"] == SERVER
        assert settings["server"] == SERVER

    def test_other_content_preserved(self, device):
        set_server_url(device, SERVER)

        package = json.loads(device.package_json.read_text())
        settings = json.loads(device.settings_json.read_text())
        assert list(package) == ["name", "version", "config_server", "media_server", "dependencies"]
        assert package["dependencies"] == {"express": "^4.17.1"}
        assert settings["volume"] == 80
        assert settings["orientation"] == "landscape"

    def test_formatting_preserved(self, device):
        set_server_url(device, SERVER)

        text = device.settings_json.read_text()
        assert text.endswith("}\n")
        assert '\n    "server": ' in text

    def test_idempotent(self, device):
        set_server_url(device, SERVER)
        package_once = device.package_json.read_text()
        settings_once = device.settings_json.read_text()

        results = set_server_url(device, SERVER)

        assert all(r.status is StepStatus.OK for r in results)
        assert device.package_json.read_text() == package_once
        assert device.settings_json.read_text() == settings_once

    def test_file_mode_kept(self, device):
        device.package_json.chmod(0o640)

        set_server_url(device, SERVER)

        assert device.package_json.stat().st_mode & 0o777 == 0o640

    def test_missing_package_json_is_fatal(self, device):
        device.package_json.unlink()

        with pytest.raises(PlayerConfigNotFoundException):
            set_server_url(device, SERVER)

    def test_missing_settings_json_is_fatal(self, device):
        device.settings_json.unlink()

        with pytest.raises(PlayerConfigNotFoundException) as exc_info:
            set_server_url(device, SERVER)

        assert exc_info.value.path == device.settings_json

    def test_missing_settings_json_leaves_package_json_untouched(self, device):
        package_before = device.package_json.read_text()
        device.settings_json.unlink()

        with pytest.raises(PlayerConfigNotFoundException):
            set_server_url(device, SERVER)

        assert device.package_json.read_text() == package_before

    def test_invalid_settings_json_leaves_package_json_untouched(self, device):
        package_before = device.package_json.read_text()
        device.settings_json.write_text("{broken")

        with pytest.raises(PlayerConfigException):
            set_server_url(device, SERVER)

        assert device.package_json.read_text() == package_before

    def test_invalid_json_is_fatal(self, device):
        device.package_json.write_text('{"config_server": ')

        with pytest.raises(PlayerConfigException):
            set_server_url(device, SERVER)

    def test_file_without_keys_is_warning(self, device):
        device.settings_json.write_text('{"orientation": "portrait"}\n')

        results = set_server_url(device, SERVER)

        assert results[1].status is StepStatus.WARNING
        assert device.settings_json.read_text() == '{"orientation": "portrait"}\n'

    def test_fallback_config_updated_when_present(self, device):
        fallback = device.fallback_config_files[0]
        fallback.write_text('{"serverUrl": "http://10.0.0.5", "serverIP": "10.0.0.5"}')

        results = set_server_url(device, SERVER)

        assert json.loads(fallback.read_text()) == {"serverUrl": SERVER, "serverIP": SERVER}
        assert [r.name for r in results] == ["player-config", "player-config", "player-config-fallback"]

    def test_broken_fallback_config_is_warning(self, device):
        fallback = device.fallback_config_files[0]
        fallback.write_text("not json")

        results = set_server_url(device, SERVER)

        assert results[-1].status is StepStatus.WARNING
        assert fallback.read_text() == "not json"
