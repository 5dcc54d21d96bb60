"""Root conftest.

``volunteer_chat.config`` builds its settings at import time, so the test
environment has to be in ``os.environ`` before any test module imports it.
"""
from __future__ import annotations

import os
from pathlib import Path

ENV_FILE = Path(__file__).resolve().parent / ".env.test"


def _read_env_file(path: Path) -> dict[str, str]:
    values: dict[str, str] = {}
    for raw in path.read_text().splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key.strip()] = value.strip().strip('"')
    return values


if ENV_FILE.exists():
    for key, value in _read_env_file(ENV_FILE).items():
        os.environ.setdefault(key, value)

# tests mint their own HS256 tokens
os.environ["JWT_VERIFY_MODE"] = "hs256"
