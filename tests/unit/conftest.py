"""Unit test configuration - isolated environment, no providers"""

import os

import pytest

from taskrank.expansion.factory import ExpanderFactory


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """
    Strip TASKRANK_* and Gemini credentials from the environment.

    Unit tests must not pick up a developer's .env.local or real API keys,
    so the working directory is moved to an empty temp dir as well.
    """
    for name in list(os.environ):
        if name.startswith("TASKRANK_"):
            monkeypatch.delenv(name, raising=False)
    for name in ("GOOGLE_API_KEY", "GEMINI_API_KEY", "GOOGLE_CLOUD_PROJECT", "GOOGLE_CLOUD_LOCATION"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    ExpanderFactory._instance = None
    yield
    ExpanderFactory._instance = None
