"""
JWT Service for session tokens and password hashing.

Provides token creation and validation for authentication and session
management, plus bcrypt helpers for stored passwords.
"""

import bcrypt
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional
from pydantic import BaseModel

from core.config import JWT_SECRET_KEY, JWT_ACCESS_TOKEN_EXPIRE_MINUTES


class TokenPayload(BaseModel):
    """Payload structure for JWT tokens."""
    sub: str  # User ID
    email: str
    role: str  # ADMIN, DOCTOR, RECEPTIONIST or PATIENT
    clinic_id: int
    clinic_name: Optional[str] = None
    name: str
    iat: Optional[int] = None  # Set by JWT service
    exp: Optional[int] = None  # Set by JWT service


class JWTService:
    """Service for JWT token operations."""

    ALGORITHM = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES = JWT_ACCESS_TOKEN_EXPIRE_MINUTES

    @classmethod
    def create_access_token(cls, payload: TokenPayload, expires_delta: Optional[timedelta] = None) -> str:
        """Create a JWT access token."""
        to_encode = payload.model_dump(exclude={"iat", "exp"})
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta if expires_delta is not None else timedelta(minutes=cls.ACCESS_TOKEN_EXPIRE_MINUTES))
        to_encode.update({"exp": expire, "iat": now})
        return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=cls.ALGORITHM)

    @classmethod
    def verify_token(cls, token: str) -> Optional[TokenPayload]:
        """Verify and decode a JWT token."""
        try:
            payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[cls.ALGORITHM])
            return TokenPayload(**payload)
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None
        except ValueError:
            # Signed by us but not shaped like a session token
            return None

    @classmethod
    def hash_password(cls, password: str) -> str:
        """Hash a password with bcrypt."""
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    @classmethod
    def verify_password(cls, password: str, password_hash: str) -> bool:
        """Check a password against its bcrypt hash."""
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False

    @classmethod
    def get_token_expiry(cls) -> datetime:
        return datetime.now(timezone.utc) + timedelta(minutes=cls.ACCESS_TOKEN_EXPIRE_MINUTES)


# Global JWT service instance
jwt_service = JWTService()
