from __future__ import annotations

import os

from conftest import register

PHOTO = {"photo": ("avatar.jpg", b"jpeg bytes", "image/jpeg")}


def test_registration_never_returns_device_token(client):
    response = client.post("/api/users", data={"username": "ana", "deviceToken": "T1"}, files=PHOTO)
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "User created"
    user = body["user"]
    assert "deviceToken" not in user
    assert user["username"] == "ana"
    assert user["photoPath"].startswith("/uploads/")
    assert user["photoPath"].endswith(".jpg")
    assert user["settings"] == {"weeklyReport": False, "monthlyReport": False, "darkTheme": True}
    assert user["importantDates"] == [] and user["history"] == [] and user["families"] == []


def test_uploaded_photo_is_served(client):
    user = register(client, "ana", "T1")
    response = client.get(user["photoPath"])
    assert response.status_code == 200
    assert response.content == b"\x89PNG fake image"


def test_duplicate_username_conflicts(client):
    register(client, "ana", "T1")
    response = client.post("/api/users", data={"username": "ana", "deviceToken": "T2"}, files=PHOTO)
    assert response.status_code == 400
    assert response.json() == {"error": "Username already exists"}


def test_duplicate_device_token_conflicts(client):
    register(client, "ana", "T1")
    response = client.post("/api/users", data={"username": "bia", "deviceToken": "T1"}, files=PHOTO)
    assert response.status_code == 400
    assert response.json() == {"error": "This device already has an account"}


def test_username_is_checked_before_token(client):
    register(client, "ana", "T1")
    response = client.post("/api/users", data={"username": "ana", "deviceToken": "T1"}, files=PHOTO)
    assert response.json() == {"error": "Username already exists"}


def test_conflicting_registration_leaves_no_photo_behind(client):
    register(client, "ana", "T1")
    before = set(os.listdir(os.environ["UPLOAD_DIR"]))
    client.post("/api/users", data={"username": "ana", "deviceToken": "T9"}, files=PHOTO)
    assert set(os.listdir(os.environ["UPLOAD_DIR"])) == before


def test_missing_fields_are_rejected(client):
    assert client.post("/api/users", data={"username": "ana", "deviceToken": "T1"}).status_code == 400
    assert client.post("/api/users", data={"deviceToken": "T1"}, files=PHOTO).status_code == 400
    assert client.post("/api/users", data={"username": "ana"}, files=PHOTO).status_code == 400


def test_username_length_is_enforced(client):
    assert client.post("/api/users", data={"username": "a", "deviceToken": "T1"}, files=PHOTO).status_code == 400
    assert client.post("/api/users", data={"username": "x" * 21, "deviceToken": "T1"}, files=PHOTO).status_code == 400


def test_get_user_by_name_requires_matching_token(client):
    user = register(client, "ana", "T1")

    response = client.get("/api/users/ana", params={"deviceToken": "T1"})
    assert response.status_code == 200
    assert response.json()["id"] == user["id"]
    assert "deviceToken" not in response.json()

    assert client.get("/api/users/ana", params={"deviceToken": "nope"}).status_code == 404
    assert client.get("/api/users/ghost", params={"deviceToken": "T1"}).status_code == 404
    assert client.get("/api/users/ana").status_code == 400


def test_touch_last_login(client):
    user = register(client, "ana", "T1")
    response = client.patch(f"/api/users/{user['id']}/last-login", json={"deviceToken": "T1"})
    assert response.status_code == 200
    assert response.json() == {"success": True}

    response = client.patch(f"/api/users/{user['id']}/last-login", json={"deviceToken": "other"})
    assert response.status_code == 404


def test_update_settings_is_partial(client):
    user = register(client, "ana", "T1")
    response = client.patch(
        f"/api/users/{user['id']}/settings",
        json={"deviceToken": "T1", "settings": {"weeklyReport": True}},
    )
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "settings": {"weeklyReport": True, "monthlyReport": False, "darkTheme": True},
    }

    stored = client.get("/api/users/ana", params={"deviceToken": "T1"}).json()
    assert stored["settings"]["weeklyReport"] is True

    response = client.patch(
        f"/api/users/{user['id']}/settings",
        json={"deviceToken": "bad", "settings": {"darkTheme": False}},
    )
    assert response.status_code == 404
