# storefront/utils/tokens.py

"""
Signed, expiring session tokens for administrators (JWT, HS256).

The codec lets PyJWT check the signature and evaluates the time claims
itself, so that expiry is strict (`now < exp`) and the clock can be fixed
in tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from jwt import encode, decode, InvalidSignatureError, InvalidTokenError
from pydantic import ValidationError

from storefront.schemas.auth import AdminClaims
from storefront.utils.errors import (
    InvalidSignature,
    MalformedToken,
    TokenExpired,
    WrongSubjectType,
)

ALGORITHM = "HS256"
ADMIN_SUBJECT_TYPE = "admin"
REQUIRED_CLAIMS = ["type", "sub", "iat", "exp"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    def __init__(
        self,
        secret_key: str,
        ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.secret_key = secret_key
        self.ttl = ttl
        self.clock = clock

    def issue(self, subject_id: str, username: Optional[str] = None, now: Optional[datetime] = None) -> str:
        """
        Creates an admin session token.
        Input: admin id and login
        Output: JWT string with claims type/sub/username/iat/exp
        """
        issued_at = now or self.clock()
        claims = {
            "type": ADMIN_SUBJECT_TYPE,
            "sub": str(subject_id),
            "username": username,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.ttl).timestamp()),
        }
        return encode(claims, self.secret_key, algorithm=ALGORITHM)

    def verify(self, token: str, now: Optional[datetime] = None) -> AdminClaims:
        """
        Verifies signature, subject type and expiry, in that order.

        Raises InvalidSignature, MalformedToken, WrongSubjectType or TokenExpired.
        """
        if not token or not isinstance(token, str):
            raise MalformedToken("Empty token")

        try:
            payload = decode(
                token,
                self.secret_key,
                algorithms=[ALGORITHM],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": REQUIRED_CLAIMS,
                },
            )
        except InvalidSignatureError:
            raise InvalidSignature()
        except InvalidTokenError as e:
            raise MalformedToken(f"Malformed token: {e}")

        try:
            claims = AdminClaims.model_validate(payload)
        except ValidationError as e:
            raise MalformedToken(f"Malformed claims: {e.error_count()} invalid field(s)")

        if claims.type != ADMIN_SUBJECT_TYPE:
            raise WrongSubjectType()

        current = (now or self.clock()).timestamp()
        if not current < claims.exp:
            raise TokenExpired()

        return claims
