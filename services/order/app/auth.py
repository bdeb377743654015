"""
Order Service — Token Verifier

The identity provider signs a token carrying {user_id, roles, email}.
This service never issues tokens; it only verifies the signature and
expiry and turns the payload into read-only Claims.

    Authorization: Bearer <token>
        │
        ▼
    TokenVerifier.verify() ──▶ Claims(user_id, roles, email)
"""

from dataclasses import dataclass, field

import jwt

from .errors import InvalidCredential, Unauthenticated

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Claims:
    """Identity facts decoded from a verified credential."""
    user_id: str
    roles: frozenset[str] = field(default_factory=frozenset)
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.roles


class TokenVerifier:
    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self.secret = secret
        self.algorithm = algorithm

    def verify(self, raw_credential: str | None) -> Claims:
        """
        Verify a raw token and return its claims.

        Raises:
            Unauthenticated: no credential supplied
            InvalidCredential: bad signature, expired, or missing user_id
        """
        if not raw_credential:
            raise Unauthenticated()

        try:
            payload = jwt.decode(
                raw_credential,
                self.secret,
                algorithms=[self.algorithm],
            )
        except jwt.PyJWTError as exc:
            raise InvalidCredential() from exc

        user_id = payload.get("user_id")
        if not user_id:
            raise InvalidCredential("Token is missing user_id")

        roles = payload.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]

        return Claims(
            user_id=str(user_id),
            roles=frozenset(str(r) for r in roles),
            email=payload.get("email"),
        )


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token part of an `Authorization: Bearer <token>` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None
