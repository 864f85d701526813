"""Shared fixtures."""

import pytest

from update_advisor.config import RunConfig


@pytest.fixture
def config():
    return RunConfig(env_name="ml")


@pytest.fixture
def auto_config():
    return RunConfig(env_name="ml", non_interactive=True)
