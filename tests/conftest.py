"""Pytest fixtures for toolbox tests."""

import pytest

from toolbox_mcp.tools import build_toolbox as build_toolbox_module


@pytest.fixture(autouse=True)
def reset_engines():
    """Each test starts without cached per-project engines."""
    build_toolbox_module.reset_engines()
    yield
    build_toolbox_module.reset_engines()
