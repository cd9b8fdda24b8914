"""
Test-wide configuration and shared fixtures.

Ensures the repository root is importable without duplicated sys.path tweaks
inside each test module, and resets the process-wide credential cache so each
test resolves API keys from its own patched settings.
"""
from __future__ import annotations

import pathlib
import sys

import pytest


REPO_ROOT = pathlib.Path(__file__).resolve().parents[2]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from backend.lambdas.shared import providers  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_key_cache():
    providers._KEY_CACHE.clear()
    yield
    providers._KEY_CACHE.clear()
