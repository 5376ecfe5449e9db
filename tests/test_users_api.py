# tests/test_users_api.py
import uuid
from http import HTTPStatus


def _user_payload(name: str = "Grace Hopper") -> dict:
    return {"name": name, "email": f"user-{uuid.uuid4().hex}@example.com"}


def test_create_user_success(client):
    payload = _user_payload()

    response = client.post("/users", json=payload)
    assert response.status_code == HTTPStatus.CREATED

    data = response.json()
    assert data["name"] == payload["name"]
    assert data["email"] == payload["email"]
    assert isinstance(data["id"], int)


def test_create_user_duplicate_email_rejected(client):
    payload = _user_payload()

    first = client.post("/users", json=payload)
    assert first.status_code == HTTPStatus.CREATED

    second = client.post("/users", json=payload)
    assert second.status_code == HTTPStatus.BAD_REQUEST
    assert "already exists" in second.json()["detail"]


def test_list_and_get_user(client):
    created = client.post("/users", json=_user_payload("Listed User")).json()

    list_resp = client.get("/users")
    assert list_resp.status_code == HTTPStatus.OK
    assert created["id"] in [u["id"] for u in list_resp.json()]

    get_resp = client.get(f"/users/{created['id']}")
    assert get_resp.status_code == HTTPStatus.OK
    assert get_resp.json()["name"] == "Listed User"


def test_get_user_not_found(client):
    response = client.get("/users/999999")
    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.json()["detail"] == "User with id 999999 not found."
