from datetime import timedelta

import jwt

from auth.utils import create_access_token, decode_access_token, hash_password, verify_password
from core import config
from models.auth import User


def test_password_hashing():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong-password", hashed)


STUDENT = User(id=5, email="a@example.com", full_name="A Student")


def test_token_round_trip():
    data = decode_access_token(create_access_token(STUDENT))
    assert data.user_id == 5
    assert data.email == "a@example.com"
    assert data.role == "student"


def test_expired_token():
    token = create_access_token(STUDENT, expires_delta=timedelta(seconds=-1))
    assert decode_access_token(token) is None


def test_token_without_user_id():
    token = jwt.encode(
        {"email": "a@example.com", "exp": 4102444800}, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM
    )
    assert decode_access_token(token) is None


def test_token_signed_with_another_key():
    token = jwt.encode({"user_id": 5, "exp": 4102444800}, "not-the-server-key", algorithm=config.JWT_ALGORITHM)
    assert decode_access_token(token) is None


def test_register_login_me(client):
    response = client.post(
        "/api/auth/register",
        json={"fullName": "New Student", "email": "new@example.com", "password": "secret123"},
    )
    assert response.status_code == 201
    assert response.json()["user"]["role"] == "student"

    duplicate = client.post(
        "/api/auth/register",
        json={"fullName": "New Student", "email": "new@example.com", "password": "secret123"},
    )
    assert duplicate.status_code == 400

    login = client.post("/api/auth/login", json={"email": "new@example.com", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["full_name"] == "New Student"


def test_login_with_wrong_password(client, user):
    response = client.post("/api/auth/login", json={"email": user.email, "password": "not-the-one"})
    assert response.status_code == 401
    assert response.json()["message"] == "Incorrect email or password"


def test_token_from_before_a_role_change_is_rejected(client, storage, admin_user, auth_headers):
    headers = auth_headers(admin_user)
    assert client.get("/api/admin/users", headers=headers).status_code == 200

    storage._users[admin_user.id].role = "student"

    response = client.get("/api/auth/me", headers=headers)
    assert response.status_code == 401
    assert response.json()["message"] == "Your role has changed, please log in again"
