import pytest

from foodhub.core.errors import AlreadyExistsError, ValidationError
from foodhub.deps import _extract_user_id
from foodhub.services.auth import create_access_token, decode_access_token, hash_password, verify_password
from foodhub.services.restaurants import check_slug, register_owner
from tests.factories import build_client, make_session
from tests.fixtures_data import EMPLOYEE_REGISTRATION, OWNER_REGISTRATION


def _login(client, email, password):
    return client.post("/auth/login", json={"username": email, "password": password})


def test_password_hashing_roundtrip():
    hashed = hash_password("rahasia123")

    assert hashed != "rahasia123"
    assert verify_password("rahasia123", hashed) is True
    assert verify_password("salah", hashed) is False
    assert verify_password("rahasia123", "not-a-bcrypt-hash") is False


def test_access_token_carries_user_id():
    payload = decode_access_token(create_access_token("42"))

    assert payload["sub"] == "42"
    assert _extract_user_id(payload) == 42
    with pytest.raises(ValueError):
        decode_access_token("garbage")


@pytest.mark.parametrize(
    ("payload", "expected"),
    [({"sub": " 7 "}, 7), ({"user_id": 3}, 3), ({"sub": "abc"}, None), ({}, None)],
)
def test_extract_user_id(payload, expected):
    assert _extract_user_id(payload) == expected


def test_owner_registration_normalizes_slug_and_logs_in():
    client = build_client(make_session())

    registered = client.post("/auth/register", json=OWNER_REGISTRATION)
    assert registered.status_code == 201
    assert registered.json()["restaurant_slug"] == "warung-bu-sri"

    login = _login(client, "SRI@example.com", OWNER_REGISTRATION["password"])
    assert login.status_code == 200
    body = login.json()
    assert body["token_type"] == "bearer"
    assert body["role"] == "owner"
    assert body["redirect_to"] == "/FoodHub.com/warung-bu-sri/owner"

    headers = {"Authorization": f"Bearer {body['access_token']}"}
    me = client.get("/auth/me", headers=headers)
    assert me.json()["email"] == "sri@example.com"
    assert me.json()["restaurant_slug"] == "warung-bu-sri"

    restaurant = client.get("/api/restaurants/warung-bu-sri", headers=headers)
    assert restaurant.status_code == 200
    assert restaurant.json()["role"] == "owner"


def test_swagger_token_endpoint_accepts_form_data():
    client = build_client(make_session())
    client.post("/auth/register", json=OWNER_REGISTRATION)

    response = client.post(
        "/auth/token",
        data={"username": OWNER_REGISTRATION["email"], "password": OWNER_REGISTRATION["password"]},
    )

    assert response.status_code == 200
    assert response.json()["access_token"]


def test_login_rejects_wrong_password_and_missing_token():
    client = build_client(make_session())
    client.post("/auth/register", json=OWNER_REGISTRATION)

    assert _login(client, OWNER_REGISTRATION["email"], "wrong-password").status_code == 401
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_duplicate_email_and_slug_are_conflicts():
    client = build_client(make_session())
    client.post("/auth/register", json=OWNER_REGISTRATION)

    same_email = dict(OWNER_REGISTRATION, restaurant_slug="another-place")
    same_slug = dict(OWNER_REGISTRATION, email="other@example.com", restaurant_slug="warung-bu-sri")

    assert client.post("/auth/register", json=same_email).status_code == 409
    assert client.post("/auth/register", json=same_slug).status_code == 409


def test_owner_registration_requires_restaurant_fields():
    client = build_client(make_session())
    payload = dict(OWNER_REGISTRATION, restaurant_name=None)

    assert client.post("/auth/register", json=payload).status_code == 422
    assert client.post("/auth/register", json=dict(OWNER_REGISTRATION, restaurant_slug="ab")).status_code == 422


def test_slug_availability():
    client = build_client(make_session())
    client.post("/auth/register", json=OWNER_REGISTRATION)

    taken = client.get("/api/restaurants/slug-availability", params={"slug": "Warung Bu Sri"})
    free = client.get("/api/restaurants/slug-availability", params={"slug": "Kedai Baru"})
    short = client.get("/api/restaurants/slug-availability", params={"slug": "a!"})

    assert taken.json() == {"slug": "warung-bu-sri", "available": False}
    assert free.json() == {"slug": "kedai-baru", "available": True}
    assert short.json()["available"] is False


def test_employee_registration_is_pending_until_approved():
    client = build_client(make_session())
    client.post("/auth/register", json=OWNER_REGISTRATION)

    registered = client.post("/auth/register", json=EMPLOYEE_REGISTRATION)
    assert registered.status_code == 201
    assert registered.json()["employee_status"] == "pending"

    login = _login(client, EMPLOYEE_REGISTRATION["email"], EMPLOYEE_REGISTRATION["password"]).json()
    assert login["role"] is None
    assert login["redirect_to"] is None
    employee_headers = {"Authorization": f"Bearer {login['access_token']}"}
    assert client.get("/api/restaurants/warung-bu-sri/orders", headers=employee_headers).status_code == 403

    owner_token = _login(client, OWNER_REGISTRATION["email"], OWNER_REGISTRATION["password"]).json()["access_token"]
    owner_headers = {"Authorization": f"Bearer {owner_token}"}
    client.post(f"/api/restaurants/warung-bu-sri/employees/{registered.json()['employee_id']}/approve", headers=owner_headers)

    login = _login(client, EMPLOYEE_REGISTRATION["email"], EMPLOYEE_REGISTRATION["password"]).json()
    assert login["role"] == "employee"
    assert login["redirect_to"] == "/FoodHub.com/warung-bu-sri/employee"
    assert client.get("/api/restaurants/warung-bu-sri/orders", headers=employee_headers).status_code == 200


def test_employee_registration_for_unknown_restaurant():
    client = build_client(make_session())

    response = client.post("/auth/register", json=EMPLOYEE_REGISTRATION)

    assert response.status_code == 400


def test_register_owner_service_rejects_invalid_and_taken_slugs():
    db = make_session()
    register_owner(
        db,
        full_name="Sri",
        email="sri@example.com",
        password="rahasia123",
        restaurant_name="Warung Bu Sri",
        slug="warung-bu-sri",
    )

    with pytest.raises(ValidationError):
        register_owner(db, full_name="A", email="a@example.com", password="x" * 6, restaurant_name="A", slug="!!")
    with pytest.raises(AlreadyExistsError):
        register_owner(
            db, full_name="B", email="b@example.com", password="x" * 6, restaurant_name="B", slug="Warung Bu  Sri"
        )
    assert check_slug(db, "warung-bu-sri") == ("warung-bu-sri", False)


def test_tokens_are_rejected_when_the_signing_key_is_empty(monkeypatch):
    from jose import jwt

    from foodhub.services import auth

    forged = jwt.encode({"sub": "1"}, "", algorithm="HS256")
    monkeypatch.setattr(auth, "JWT_SECRET_KEY", "")

    with pytest.raises(ValueError):
        auth.decode_access_token(forged)


def test_user_created_at_is_stamped_by_the_database():
    from foodhub.models.user import User

    column = User.__table__.c.created_at
    assert column.type.timezone is True
    assert column.server_default is not None

    db = make_session()
    user = User(full_name="Sri", email="sri@example.com", password_hash=hash_password("rahasia123"))
    db.add(user)
    db.commit()
    db.refresh(user)

    assert user.created_at is not None
