"""Tests for CLI module."""

from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from pairlink.cli import main


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


class TestCLIHelp:
    """Test CLI help output."""

    def test_cli_help(self, runner):
        """pairlink --help shows usage."""
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "pairlink" in result.output
        assert "serve" in result.output

    def test_serve_help(self, runner):
        result = runner.invoke(main, ["serve", "--help"])

        assert result.exit_code == 0
        assert "--port" in result.output
        assert "PORT" in result.output


class TestVersionCommand:
    """Test version command."""

    def test_version_command(self, runner):
        result = runner.invoke(main, ["version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestQrCommand:
    """Test qr command."""

    def test_qr_prints_code(self, runner):
        result = runner.invoke(main, ["qr", "482913"])

        assert result.exit_code == 0
        assert len(result.output.splitlines()) > 10


class TestServeCommand:
    """Test serve command wiring."""

    def _mock_server(self, mock_server_class):
        server = mock_server_class.return_value
        server.start = AsyncMock()
        server.run_forever = AsyncMock()
        server.close = AsyncMock()
        server.get_port.return_value = 4321
        return server

    def test_serve_uses_config_port(self, runner, tmp_path):
        """Port comes from the config file when not overridden."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("port: 9999\n")

        with patch("pairlink.server.RelayServer") as mock_server_class:
            server = self._mock_server(mock_server_class)
            result = runner.invoke(main, ["--config", str(config_file), "serve"], env={"PORT": None})

        assert result.exit_code == 0, result.output
        config = mock_server_class.call_args.kwargs["config"]
        assert config.port == 9999
        server.run_forever.assert_awaited_once()
        assert "Server running on port 4321" in result.output

    def test_serve_port_option(self, runner, tmp_path):
        """--port and --host override the config."""
        with patch("pairlink.server.RelayServer") as mock_server_class:
            self._mock_server(mock_server_class)
            result = runner.invoke(
                main,
                ["--config", str(tmp_path / "none.yaml"), "serve", "--port", "8080", "--host", "127.0.0.1"],
            )

        assert result.exit_code == 0, result.output
        config = mock_server_class.call_args.kwargs["config"]
        assert config.port == 8080
        assert config.bind_address == "127.0.0.1"

    def test_serve_port_from_env(self, runner, tmp_path):
        """$PORT is honoured."""
        with patch("pairlink.server.RelayServer") as mock_server_class:
            self._mock_server(mock_server_class)
            result = runner.invoke(
                main,
                ["--config", str(tmp_path / "none.yaml"), "serve"],
                env={"PORT": "7070"},
            )

        assert result.exit_code == 0, result.output
        assert mock_server_class.call_args.kwargs["config"].port == 7070

    def test_serve_startup_error(self, runner, tmp_path):
        """Bind failure exits with status 1."""
        with patch("pairlink.server.RelayServer") as mock_server_class:
            server = self._mock_server(mock_server_class)
            server.start.side_effect = OSError("Address already in use")
            result = runner.invoke(
                main,
                ["--config", str(tmp_path / "none.yaml"), "serve"],
                env={"PORT": None},
            )

        assert result.exit_code == 1
        assert "Address already in use" in result.output
        server.close.assert_awaited_once()
