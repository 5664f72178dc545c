"""Signed access and refresh credentials."""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from uuid import UUID

import jwt

from messenger.config import Settings
from messenger.errors import InvalidTokenError
from messenger.logging import get_logger
from messenger.models.api.users import UserResponse

logger = get_logger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
REQUIRED_CLAIMS = ["sub", "iat", "exp", "jti", "typ"]


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims of an access or refresh token."""

    user_id: UUID
    username: str
    email: str
    jti: str
    token_type: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """Issue and verify JWTs.

    Access and refresh tokens are signed with independent secrets, so one can
    never be accepted in place of the other. Only the configured algorithm is
    accepted on decode.
    """

    def __init__(self, settings: Settings):
        self.algorithm = settings.jwt_algorithm
        self.access_secret = settings.jwt_access_secret
        self.refresh_secret = settings.jwt_refresh_secret
        self.access_ttl = timedelta(seconds=settings.access_token_ttl_seconds)
        self.refresh_ttl = timedelta(seconds=settings.refresh_token_ttl_seconds)

    def issue_access_token(self, user: UserResponse) -> str:
        return self._encode(
            user, ACCESS_TOKEN_TYPE, self.access_secret, self.access_ttl
        )

    def issue_refresh_token(self, user: UserResponse) -> str:
        return self._encode(
            user, REFRESH_TOKEN_TYPE, self.refresh_secret, self.refresh_ttl
        )

    def verify_access_token(self, token: str) -> TokenClaims:
        return self._decode(token, ACCESS_TOKEN_TYPE, self.access_secret)

    def verify_refresh_token(self, token: str) -> TokenClaims:
        return self._decode(token, REFRESH_TOKEN_TYPE, self.refresh_secret)

    def _encode(
        self, user: UserResponse, token_type: str, secret: str, ttl: timedelta
    ) -> str:
        now = datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "sub": str(user.id),
            "username": user.username,
            "email": user.email,
            "iat": now,
            "exp": now + ttl,
            "jti": secrets.token_hex(16),
            "typ": token_type,
        }
        token = jwt.encode(payload, secret, algorithm=self.algorithm)
        logger.debug(
            "token_issued",
            user_id=str(user.id),
            token_type=token_type,
            expires_seconds=int(ttl.total_seconds()),
        )
        return token

    def _decode(self, token: str, token_type: str, secret: str) -> TokenClaims:
        """Verify signature, expiry and required claims.

        Raises:
            InvalidTokenError: On any verification failure
        """
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidTokenError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            logger.info(
                "token_rejected", token_type=token_type, reason=type(e).__name__
            )
            raise InvalidTokenError() from e

        if payload.get("typ") != token_type:
            raise InvalidTokenError()

        try:
            user_id = UUID(str(payload["sub"]))
        except ValueError as e:
            raise InvalidTokenError() from e

        return TokenClaims(
            user_id=user_id,
            username=str(payload.get("username", "")),
            email=str(payload.get("email", "")),
            jti=str(payload["jti"]),
            token_type=token_type,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
