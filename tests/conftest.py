"""Shared pytest fixtures: in-memory Motor database and an app TestClient."""
from __future__ import annotations

import asyncio
import os
import tempfile
from datetime import date, timedelta

# Must be set before the application modules read their configuration
os.environ.pop("MONGODB_URI", None)
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="expense-tracker-uploads-")
os.environ["REPORT_LOCALE"] = "pt-BR"

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from main import app
from services.database import ensure_indexes, get_db


@pytest.fixture()
def db():
    database = AsyncMongoMockClient()["expense_tracker_test"]
    asyncio.run(ensure_indexes(database))
    return database


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register(client: TestClient, username: str, token: str) -> dict:
    """Registers a user and returns the response payload's ``user``."""
    response = client.post(
        "/api/users",
        data={"username": username, "deviceToken": token},
        files={"photo": ("avatar.png", b"\x89PNG fake image", "image/png")},
    )
    assert response.status_code == 201, response.text
    return response.json()["user"]


@pytest.fixture()
def ana(client) -> dict:
    user = register(client, "ana", "T1")
    user["token"] = "T1"
    return user


@pytest.fixture()
def bruno(client) -> dict:
    user = register(client, "bruno", "T2")
    user["token"] = "T2"
    return user


def auth(user: dict) -> dict:
    return {"userId": user["id"], "deviceToken": user["token"]}


def current_week_day(offset_from_sunday: int) -> date:
    today = date.today()
    sunday = today - timedelta(days=(today.weekday() + 1) % 7)
    return sunday + timedelta(days=offset_from_sunday)


def expense_payload(user: dict, **overrides) -> dict:
    payload = {
        "description": "Aluguel",
        "amount": 1200,
        "kind": "expense",
        "dueDate": date.today().isoformat(),
        "paymentType": "transfer",
        "responsavel": "Ana",
        **auth(user),
    }
    payload.update(overrides)
    return payload
