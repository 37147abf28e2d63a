"""
Shared test configuration.

Patches dotenv so pydantic-settings never reads a real .env file during
tests, and clears RESTBIND_* variables inherited from the outer shell. Tests
control config exclusively through monkeypatch.setenv().
"""

import os

import pytest


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


@pytest.fixture(autouse=True)
def clear_restbind_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("RESTBIND_"):
            monkeypatch.delenv(name, raising=False)
