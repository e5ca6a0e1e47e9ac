"""Shared fixtures: a throwaway sqlite database per test."""
import pytest

from eligibility import container
from eligibility.core import config
from eligibility.persistence.db import init_db


@pytest.fixture
def db(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DATABASE_PATH", str(tmp_path / "eligibility.db"))
    init_db()
    container.clear_caches()
    yield
    container.clear_caches()


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient
    from eligibility.main import app

    with TestClient(app) as c:
        yield c
