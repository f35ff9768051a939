"""Shared fixtures for app-level tests."""
import pytest
from dependency_injector import providers

from revtunnel.app.config import AppConfig, DirectoryConfig, TunnelSettings
from revtunnel.app.container import Container
from fakes import FakeScheduler


@pytest.fixture
def test_config(tmp_path):
    """Create test configuration with explicit values."""
    return AppConfig(
        directories=DirectoryConfig(home=tmp_path),
        tunnel=TunnelSettings(
            host="tunnel.example.com",
            local_port=3000,
            min_port=8000,
            max_port=8000,
            max_retries=3,
        ),
    )


@pytest.fixture
def install_transport(monkeypatch):
    """Patch Container in the CLI and facade so sessions use ``transport``."""

    def _install(transport):
        def create_mock_container():
            c = Container()
            c.transport.override(providers.Object(transport))
            c.scheduler.override(providers.Singleton(FakeScheduler))
            return c

        monkeypatch.setattr("revtunnel.app.cli.Container", create_mock_container)
        monkeypatch.setattr("revtunnel.app.main.Container", create_mock_container)
        return transport

    return _install
