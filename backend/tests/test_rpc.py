import pytest

from account_service.models.user import User
from account_service.services.token_service import ADMIN_ROLE, USER_ROLE

from conftest import TEST_PASSWORD


@pytest.fixture
def user_id(db, credentials):
    return credentials.register(
        db, first_name="Ada", last_name="Lovelace", email="a@x.com", password=TEST_PASSWORD
    )


def test_get_auth_token_for_live_token(client, db, token_service, user_id):
    token = token_service.issue(db, user_id, USER_ROLE)

    response = client.post("/rpc/AuthService/GetAuthToken", json={"token": token})

    assert response.status_code == 200
    assert response.json() == {"role": USER_ROLE, "valid": True, "userId": user_id}


def test_get_auth_token_reports_admin_role(client, db, token_service, user_id):
    token = token_service.issue(db, user_id, ADMIN_ROLE)

    response = client.post("/rpc/AuthService/GetAuthToken", json={"token": token})

    assert response.json()["role"] == ADMIN_ROLE


def test_get_auth_token_after_revoke(client, db, token_service, user_id):
    token = token_service.issue(db, user_id, USER_ROLE)
    token_service.revoke(db, token)

    response = client.post("/rpc/AuthService/GetAuthToken", json={"token": token})

    assert response.status_code == 200
    assert response.json() == {"role": "", "valid": False, "userId": None}


def test_get_auth_token_for_garbage(client):
    response = client.post("/rpc/AuthService/GetAuthToken", json={"token": "garbage"})
    assert response.json()["valid"] is False


def test_update_then_get_rating(client, user_id):
    update = client.post("/rpc/UserService/UpdateUserRating", json={"userId": user_id, "rating": 4.5})
    assert update.status_code == 200
    assert update.json() == {"success": True}

    response = client.post("/rpc/UserService/GetUserRating", json={"userId": user_id})

    assert response.status_code == 200
    assert response.json() == {"rating": 4.5}


def test_new_user_has_neutral_rating(client, user_id):
    response = client.post("/rpc/UserService/GetUserRating", json={"userId": user_id})
    assert response.json() == {"rating": 0.0}


def test_get_rating_for_missing_user(client):
    response = client.post("/rpc/UserService/GetUserRating", json={"userId": 999})

    assert response.status_code == 404
    assert response.json() == {"code": "NOT_FOUND", "message": "User not found"}


def test_update_rating_for_missing_user(client, db):
    response = client.post("/rpc/UserService/UpdateUserRating", json={"userId": 999, "rating": 3})

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"
    assert db.query(User).count() == 0


def test_update_rating_validates_request(client, user_id):
    response = client.post("/rpc/UserService/UpdateUserRating", json={"userId": user_id})
    assert response.status_code == 400


def test_update_rating_accepts_any_float(client, user_id):
    update = client.post("/rpc/UserService/UpdateUserRating", json={"userId": user_id, "rating": -1.5})
    assert update.json() == {"success": True}

    response = client.post("/rpc/UserService/GetUserRating", json={"userId": user_id})
    assert response.json() == {"rating": -1.5}
