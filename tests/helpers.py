"""Identities and token signing shared by the test suites."""

from datetime import datetime, timedelta, timezone

import jwt

JWT_SECRET = "test_secret"

OWNER_ID = "cab9fe0b-e964-4147-bb01-ea03f1babcbd"
OTHER_USER_ID = "bbb9fe0b-e964-4147-bb01-ea03f1babcbd"
ADMIN_ID = "adm9fe0b-e964-4147-bb01-ea03f1babcbd"

BRICK_AND_CEMENT = [
    {"name": "Brick", "quantity": 100, "unit_price": 50.5},
    {"name": "Cement", "quantity": 50, "unit_price": 150},
]


def sign_token(
    user_id: str,
    roles=("user",),
    secret: str = JWT_SECRET,
    expires_in: timedelta = timedelta(hours=24),
    **extra,
) -> str:
    """Sign a token the way the identity provider does."""
    payload = {
        "user_id": user_id,
        "email": "test@example.com",
        "roles": list(roles),
        "exp": datetime.now(timezone.utc) + expires_in,
        **extra,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def bearer(user_id: str = OWNER_ID, roles=("user",)) -> dict:
    return {"Authorization": f"Bearer {sign_token(user_id, roles)}"}
