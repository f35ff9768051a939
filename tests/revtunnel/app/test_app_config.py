"""Tests for AppConfig loading and validation."""
from pathlib import Path

import pytest
from pydantic import ValidationError

from revtunnel.app.config import AppConfig, LoggingConfig, TunnelSettings
from revtunnel.app.main import with_tunnel_overrides
from revtunnel.core.domain.models import PortRange


def test_defaults():
    config = AppConfig()

    assert config.tunnel.host is None
    assert config.tunnel.min_port == 8000
    assert config.tunnel.max_port == 9000
    assert config.tunnel.max_retries == 5
    assert config.tunnel.connect_timeout == 10.0
    assert config.tunnel.transport == "ssh"
    assert config.logging == LoggingConfig()


def test_env_vars_with_nested_delimiter(monkeypatch, tmp_path):
    monkeypatch.setenv("REVTUNNEL_TUNNEL__HOST", "tunnel.example.com")
    monkeypatch.setenv("REVTUNNEL_TUNNEL__LOCAL_PORT", "3000")
    monkeypatch.setenv("REVTUNNEL_TUNNEL__MIN_PORT", "7000")
    monkeypatch.setenv("REVTUNNEL_TUNNEL__MAX_PORT", "7010")
    monkeypatch.setenv("REVTUNNEL_TUNNEL__TRANSPORT", "paramiko")
    monkeypatch.setenv("REVTUNNEL_TUNNEL__IDLE_TIMEOUT", "600")
    monkeypatch.setenv("REVTUNNEL_LOGGING__LEVEL", "DEBUG")
    monkeypatch.setenv("REVTUNNEL_DIRECTORIES__HOME", str(tmp_path / "home"))

    config = AppConfig()

    assert config.tunnel.host == "tunnel.example.com"
    assert config.tunnel.local_port == 3000
    assert config.tunnel.transport == "paramiko"
    assert config.tunnel.idle_timeout == 600
    assert config.logging.level == "DEBUG"
    assert config.directories.home == tmp_path / "home"
    assert config.directories.logs_dir == tmp_path / "home" / "logs"
    assert config.directories.logs_dir.is_dir()


def test_unprefixed_env_is_ignored(monkeypatch):
    monkeypatch.setenv("HOST", "wrong.example.com")
    monkeypatch.setenv("USER", "wrong-user")

    config = AppConfig()

    assert config.tunnel.host is None
    assert config.tunnel.user is None


def test_invalid_transport_rejected(monkeypatch):
    monkeypatch.setenv("REVTUNNEL_TUNNEL__TRANSPORT", "telnet")

    with pytest.raises(ValidationError):
        AppConfig()


def test_config_is_frozen():
    config = AppConfig()

    with pytest.raises(ValidationError):
        config.tunnel = TunnelSettings()


class TestTunnelSettings:

    def test_to_tunnel_config(self):
        settings = TunnelSettings(
            host="tunnel.example.com",
            user="deploy",
            local_port=3000,
            min_port=8000,
            max_port=8010,
            identity_file="~/.ssh/id_ed25519",
            ssh_port=2222,
            idle_timeout=0,
        )

        config = settings.to_tunnel_config()

        assert config.host == "tunnel.example.com"
        assert config.ports == PortRange(min=8000, max=8010)
        assert config.local_port == 3000
        assert config.idle_timeout is None
        assert config.options == {
            "ssh_port": 2222,
            "local_host": "localhost",
            "identity_file": "~/.ssh/id_ed25519",
        }

    def test_requires_host(self):
        with pytest.raises(ValueError, match="Remote host required"):
            TunnelSettings(local_port=3000).to_tunnel_config()

    def test_requires_local_port(self):
        with pytest.raises(ValueError, match="Local port required"):
            TunnelSettings(host="h").to_tunnel_config()

    def test_inverted_range(self):
        with pytest.raises(ValueError, match="Invalid port range"):
            TunnelSettings(host="h", local_port=1, min_port=10, max_port=5).to_tunnel_config()


class TestWithTunnelOverrides:

    def test_none_values_keep_config(self, test_config):
        assert with_tunnel_overrides(test_config, host=None, user=None) is test_config

    def test_overrides_are_applied(self, test_config):
        config = with_tunnel_overrides(test_config, host="other.example.com", max_retries=9)

        assert config.tunnel.host == "other.example.com"
        assert config.tunnel.max_retries == 9
        assert config.tunnel.local_port == 3000
        assert test_config.tunnel.host == "tunnel.example.com"

    def test_overrides_are_validated(self, test_config):
        with pytest.raises(ValidationError):
            with_tunnel_overrides(test_config, max_retries=0)
