"""Pytest configuration for Paranoia Toolkit."""

import pytest

from paranoia_toolkit.config import ParanoiaConfig, get_config, set_config


def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line("markers", "cli: mark test as command-line test")


@pytest.fixture(autouse=True)
def default_config():
    """Run every test against default configuration."""
    previous = get_config()
    config = ParanoiaConfig()
    set_config(config)
    yield config
    set_config(previous)
