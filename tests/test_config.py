"""Tests for config loading."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from pairlink.config import (
    DEFAULT_MAX_MESSAGE_SIZE,
    Config,
    LivenessConfig,
    PairingConfig,
    get_config_path,
    load_config,
)

FULL_CONFIG = """\
port: 8443
bind_address: 127.0.0.1
log_level: debug
log_file: /var/log/pairlink.log
static_dir: /srv/pairlink
max_message_size: 1048576
pairing:
  logout_grace: 1.5
  handler_timeout: 3
liveness:
  interval: 30
  enabled: false
"""


def write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


class TestDefaults:

    def test_server_defaults(self):
        config = Config()

        assert (config.port, config.bind_address) == (10000, "0.0.0.0")
        assert config.log_level == "INFO"
        assert config.log_file is None
        assert config.static_dir is None
        assert config.max_message_size == DEFAULT_MAX_MESSAGE_SIZE

    def test_protocol_timings(self):
        """Grace and probe period match what clients expect."""
        assert PairingConfig().logout_grace == 0.4
        assert PairingConfig().handler_timeout == 10.0
        assert LivenessConfig() == LivenessConfig(interval=15.0, enabled=True)

    @pytest.mark.parametrize("interval", [0, -1, -0.5])
    def test_liveness_interval_must_be_positive(self, interval):
        with pytest.raises(ValueError, match="interval"):
            LivenessConfig(interval=interval)


class TestConfigPath:

    def test_default_location(self):
        assert get_config_path() == Path.home() / ".config" / "pairlink" / "config.yaml"

    def test_explicit_path_wins(self, tmp_path):
        assert get_config_path(tmp_path / "x.yaml") == tmp_path / "x.yaml"


class TestLoadConfig:

    def test_full_file(self, tmp_path):
        config = load_config(write(tmp_path, FULL_CONFIG))

        assert config == Config(
            port=8443,
            bind_address="127.0.0.1",
            log_level="debug",
            log_file="/var/log/pairlink.log",
            static_dir="/srv/pairlink",
            max_message_size=1048576,
            pairing=PairingConfig(logout_grace=1.5, handler_timeout=3),
            liveness=LivenessConfig(interval=30, enabled=False),
        )

    def test_partial_sections_keep_defaults(self, tmp_path):
        config = load_config(write(tmp_path, "pairing:\n  logout_grace: 2\n"))

        assert config.pairing == PairingConfig(logout_grace=2)
        assert config.liveness == LivenessConfig()
        assert config.port == 10000

    @pytest.mark.parametrize(
        "text",
        ["", "   \n", "not: valid: yaml: [", "- just\n- a list\n", "42\n"],
        ids=["empty", "blank", "invalid", "list", "scalar"],
    )
    def test_unusable_file_gives_defaults(self, tmp_path, text):
        assert load_config(write(tmp_path, text)) == Config()

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "absent.yaml") == Config()

    def test_reader_receives_resolved_path(self, tmp_path):
        reader = Mock(return_value={"port": 5555})
        path = tmp_path / "config.yaml"

        config = load_config(path, file_reader=reader)

        reader.assert_called_once_with(path)
        assert config.port == 5555

    def test_bad_liveness_interval_raises(self, tmp_path):
        with pytest.raises(ValueError):
            load_config(write(tmp_path, "liveness:\n  interval: -1\n"))

    def test_unknown_keys_ignored(self, caplog):
        reader = Mock(return_value={"port": 7000, "colour": "blue", "pairing": {"speed": 3}})

        with caplog.at_level("WARNING", logger="pairlink.config"):
            config = load_config(Path("unused.yaml"), file_reader=reader)

        assert config.port == 7000
        assert config.pairing == PairingConfig()
        assert "'colour'" in caplog.text
        assert "pairing.'speed'" in caplog.text

    def test_non_mapping_section_uses_defaults(self):
        reader = Mock(return_value={"liveness": [1, 2]})

        config = load_config(Path("unused.yaml"), file_reader=reader)

        assert config.liveness == LivenessConfig()
