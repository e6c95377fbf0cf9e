"""Shared fixtures."""

import json
import os
from types import SimpleNamespace

# Use litellm's bundled model cost map instead of fetching it over the network
# (inherited by spawned workers too); offline fetch failures can deadlock its import.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

import litellm  # noqa: E402
import pytest

from reqingest.config import CONFIG_ENV_VAR, MEMORY_ENV_VAR


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep a developer's reqingest settings out of the tests."""
    for name in (CONFIG_ENV_VAR, MEMORY_ENV_VAR, "REQINGEST_MODEL", "REQINGEST_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_llm(monkeypatch):
    """Replace litellm.completion with a canned two-item answer; returns the call log."""
    calls = []

    def completion(**kwargs):
        calls.append(kwargs)
        content = json.dumps(
            [
                {"title": "Invoice export", "description": "Invoices export to PDF", "category": "data"},
                {"title": "Audit log", "description": "Every change is logged", "category": "security"},
            ]
        )
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])

    monkeypatch.setattr(litellm, "completion", completion)
    return calls


@pytest.fixture
def requirements_file(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text(
        "The billing system shall export every invoice as PDF.\n\n"
        "All changes to customer records shall be written to an audit log.\n",
        encoding="utf-8",
    )
    return path
