from __future__ import annotations

import os

import pytest

from audiotricks import config


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Run every test against default settings without a stray .env file."""

    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("AUDIOTRICKS_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    config.reset_settings()
    yield
    config.reset_settings()
