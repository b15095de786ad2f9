import os
import sys

import pytest

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _root)

from clinic_intel import db  # noqa: E402


@pytest.fixture
def store(tmp_path, monkeypatch):
    """Fresh SQLite store per test."""
    monkeypatch.setenv("CLINIC_INTEL_DB_PATH", str(tmp_path / "clinic_intel.db"))
    db.init_db()
    return db


def _entity(**overrides):
    base = {
        "id": "clinic-001",
        "name": "Gangnam Skin Clinic",
        "district": "강남구",
        "address": "Seoul Gangnam-gu Teheran-ro 1",
        "latitude": 37.5000,
        "longitude": 127.0300,
        "email": "info@gangnamskin.kr",
        "opened_at": "2023-03-01",
        "data_quality_score": 80,
        "status": "active",
    }
    base.update(overrides)
    return base


@pytest.fixture
def make_entity():
    return _entity
