"""Shared fixtures: isolate every test from JANITOR_* settings."""
import os

import pytest

from usage_janitor import config as config_module


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Drop JANITOR_* variables and the cached config for each test."""
    for key in list(os.environ):
        if key.startswith("JANITOR_"):
            monkeypatch.delenv(key, raising=False)
    # Keep load_dotenv away from any .env in the developer's checkout
    monkeypatch.chdir(tmp_path)
    config_module.reset_config()
    yield
    config_module.reset_config()
