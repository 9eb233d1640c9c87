from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
import secrets
import jwt
from ..config import Settings
from ..errors import InvalidToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenClaims:
    id: int
    username: str
    email: str
    expires_at: datetime


class TokenIssuer:
    """
    Issues and verifies HS256 bearer tokens.

    Tokens carry the user's id, username and email and expire after
    ``expiration_seconds``. There is no revocation list: a token stays valid
    until it expires, logging out just means the client discards it.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", expiration_seconds: int = 86400):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self.algorithm = algorithm
        self.expiration_seconds = expiration_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        secret = settings.jwt_secret
        if not secret:
            secret = secrets.token_urlsafe(48)
            logger.warning(
                "⚠️ JWT_SECRET is not set - using a random per-process secret, "
                "tokens will not survive a restart"
            )
        return cls(secret, settings.jwt_algorithm, settings.jwt_expiration)

    def issue(self, user) -> str:
        now = datetime.now(timezone.utc)
        to_encode = {
            "sub": str(user.id),
            "id": user.id,
            "username": user.username,
            "email": user.email,
            "iat": now,
            "exp": now + timedelta(seconds=self.expiration_seconds),
        }
        return jwt.encode(to_encode, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidToken("Token expired")
        except jwt.PyJWTError as e:
            raise InvalidToken(f"Invalid token: {e}")

        try:
            return TokenClaims(
                id=int(payload["id"]),
                username=payload["username"],
                email=payload["email"],
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError):
            raise InvalidToken("Token is missing identity claims")
