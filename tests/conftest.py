# tests/conftest.py
from __future__ import annotations

import os
import tempfile

# Must be set before anything imports flipwatch.config / flipwatch.db
_TMP = tempfile.mkdtemp(prefix="flipwatch-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'flipwatch_test.db')}"
os.environ["APP_ENV"] = "test"
os.environ["SFR_API_KEY"] = "test-key"
os.environ["SFR_API_URL"] = "http://sfr.test"

import pytest  # noqa: E402

from flipwatch import models  # noqa: E402,F401
from flipwatch.db import Base, SessionLocal, engine  # noqa: E402

from sfr_fakes import FakeSfrApi  # noqa: E402


@pytest.fixture()
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def fake_api() -> FakeSfrApi:
    return FakeSfrApi()


@pytest.fixture()
def sfr_client(fake_api: FakeSfrApi):
    client = fake_api.client()
    try:
        yield client
    finally:
        client.close()
