import pytest
from fastapi.testclient import TestClient

from friendmap.main import app
from friendmap.routers.users import get_user_service
from friendmap.services.user_service import UserService
from friendmap.utils.security import create_login_token, decode_login_token


@pytest.fixture
def client(user_repo):
    app.dependency_overrides[get_user_service] = lambda: UserService(user_repo)
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(user_id, **extra):
    token = create_login_token({"_id": user_id, "fullName": "Tester", **extra})
    return {"Authorization": f"Bearer {token}"}


SIGNUP = {"email": "dana@example.com", "password": "hunter22", "username": "dana", "fullName": "Dana"}


def test_signup_then_login(client):
    res = client.post("/api/auth/signup", json=SIGNUP)
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert "password" not in body["user"]
    assert "loginToken" in res.cookies or "loginToken" in res.headers.get("set-cookie", "")

    res = client.post("/api/auth/login", json={"email": "dana@example.com", "password": "hunter22"})
    assert res.status_code == 200
    token = res.json()["token"]
    assert decode_login_token(token)["_id"] == body["user"]["_id"]


def test_bad_login(client):
    client.post("/api/auth/signup", json=SIGNUP)

    res = client.post("/api/auth/login", json={"email": "dana@example.com", "password": "nope"})

    assert res.status_code == 401
    assert res.json() == {"err": "Failed to Login"}


def test_signup_validation(client):
    res = client.post("/api/auth/signup", json={**SIGNUP, "password": "123"})
    assert res.status_code == 400

    client.post("/api/auth/signup", json=SIGNUP)
    res = client.post("/api/auth/signup", json={**SIGNUP, "username": "other"})
    assert res.json() == {"err": "Email already taken"}


def test_logout(client):
    res = client.post("/api/auth/logout")
    assert res.json() == {"msg": "Logged out successfully"}


def test_get_search_and_batch(client, users):
    res = client.get(f"/api/user/{users['alice']}?mini=true")
    assert res.json()["username"] == "alice"

    assert client.get("/api/user/000000000000000000000000").status_code == 404

    found = client.get("/api/user/search", params={"username": "bo"}).json()
    assert [u["_id"] for u in found] == [users["bob"]]

    batch = client.get("/api/user/batch", params={"ids": f"{users['alice']},{users['carol']}"}).json()
    assert {u["_id"] for u in batch} == {users["alice"], users["carol"]}

    batch = client.post("/api/user/batch", json={"ids": [users["bob"]]}).json()
    assert [u["username"] for u in batch] == ["bob"]


def test_update_self_only(client, users):
    alice, bob = users["alice"], users["bob"]

    res = client.put(f"/api/user/{bob}", json={"fullName": "X"}, headers=auth(alice))
    assert res.status_code == 403

    res = client.put(f"/api/user/{alice}", json={"fullName": "Ally"}, headers=auth(alice))
    assert res.json()["fullName"] == "Ally"


def test_delete_needs_admin(client, users):
    res = client.delete(f"/api/user/{users['bob']}", headers=auth(users["alice"]))
    assert res.status_code == 403
    assert res.json() == {"err": "Not authorized"}

    res = client.delete(f"/api/user/{users['bob']}", headers=auth(users["alice"], isAdmin=True))
    assert res.json() == {"msg": "Deleted successfully"}


def test_fcm_token(client, user_repo, users):
    alice = users["alice"]

    client.put("/api/user/fcm-token", json={"token": "tok-1"}, headers=auth(alice))
    assert user_repo.users[alice]["fcmTokens"] == ["tok-1"]

    client.delete("/api/user/fcm-token", headers=auth(alice))
    assert user_repo.users[alice]["fcmTokens"] == []
