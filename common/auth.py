"""Password hashing and JWT handling."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError

from .config import Settings
from .errors import UnauthorizedError
from .schemas import TokenPayload

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


class TokenCodec:
    """Signs and verifies the stateless session token.

    A token is valid until its ``exp`` claim; there is no revocation list.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 60) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self.expire_minutes = expire_minutes

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenCodec":
        return cls(settings.jwt_secret, settings.jwt_algorithm, settings.access_token_expire_minutes)

    def encode(self, payload: TokenPayload, expires_delta: Optional[timedelta] = None) -> str:
        to_encode: Dict[str, Any] = payload.model_dump(mode="json", by_alias=True)
        expire = datetime.utcnow() + (expires_delta or timedelta(minutes=self.expire_minutes))
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> TokenPayload:
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
            return TokenPayload.model_validate(claims)
        except (JWTError, ValidationError) as exc:
            raise UnauthorizedError("Invalid token", code="INVALID_TOKEN") from exc

    @staticmethod
    def peek(token: str) -> Optional[Dict[str, Any]]:
        """Read the claims without checking signature or expiry."""

        try:
            return jwt.get_unverified_claims(token)
        except JWTError:
            return None
