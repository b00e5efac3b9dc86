import os

# must be set before the app modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_FILE"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.pop("API_SECRET_KEY", None)

import pytest
from fastapi.testclient import TestClient

import database
import main


@pytest.fixture(autouse=True)
def fresh_db():
    database.Base.metadata.drop_all(bind=database.engine)
    database.Base.metadata.create_all(bind=database.engine)
    yield


@pytest.fixture
def db():
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(main.api)
