"""
Pytest configuration and shared fixtures for the shortener tests.
"""

import os
import tempfile

_tmp = tempfile.mkdtemp(prefix="edge-shortener-tests-")
os.environ.setdefault("LOG_DIR", os.path.join(_tmp, "logs"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_tmp, 'default.db')}")

from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from app import app, get_store
from db import make_engine
from kv import KVStore
from links import ClickLog, LinkStore


@pytest.fixture
def kv(tmp_path: Path) -> KVStore:
    """A key/value store on a throwaway SQLite file."""
    return KVStore(make_engine(f"sqlite:///{tmp_path / 'kv.db'}"))


@pytest.fixture
def links(kv: KVStore) -> LinkStore:
    return LinkStore(kv)


@pytest.fixture
def clicks(kv: KVStore) -> ClickLog:
    return ClickLog(kv)


@pytest.fixture
def client(kv: KVStore) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_store] = lambda: kv
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
