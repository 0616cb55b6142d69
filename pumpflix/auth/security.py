"""Security utilities for authentication."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from pumpflix.config import settings


class PasswordManager:
    """Password hashing and verification utilities."""

    def __init__(self):
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=settings.salt_rounds
        )

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt."""
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash."""
        return self.pwd_context.verify(plain_password, hashed_password)

    def is_password_strong(self, password: str) -> tuple[bool, List[str]]:
        """Check if password meets strength requirements."""
        issues = []

        if len(password) < 8:
            issues.append("Password must be at least 8 characters long")

        if len(password) > 72:
            issues.append("Password must not exceed 72 characters")

        if not any(c.isalpha() for c in password):
            issues.append("Password must contain at least one letter")

        if not any(c.isdigit() for c in password):
            issues.append("Password must contain at least one digit")

        if password.lower() in ["password1", "12345678", "qwerty123"]:
            issues.append("Password is too common")

        return len(issues) == 0, issues


class TokenManager:
    """JWT token management utilities."""

    def __init__(self):
        self.secret_key = settings.secret_key
        self.algorithm = settings.algorithm
        self.access_token_expire_hours = settings.access_token_expire_hours
        self.refresh_token_expire_days = settings.refresh_token_expire_days

    def _encode(self, data: Dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
        to_encode = data.copy()
        now = datetime.now(timezone.utc)
        to_encode.update({
            "exp": now + expires_delta,
            "iat": now,
            "type": token_type,
        })
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def create_access_token(
        self,
        data: Dict[str, Any],
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """Create JWT access token."""
        return self._encode(
            data, "access", expires_delta or timedelta(hours=self.access_token_expire_hours)
        )

    def create_refresh_token(
        self,
        data: Dict[str, Any],
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """Create JWT refresh token."""
        return self._encode(
            data, "refresh", expires_delta or timedelta(days=self.refresh_token_expire_days)
        )

    def verify_token(self, token: str, token_type: str = "access") -> Optional[Dict[str, Any]]:
        """Verify and decode JWT token."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None

        if payload.get("type") != token_type:
            return None

        return payload


class SessionManager:
    """Session management utilities."""

    def __init__(self):
        self.token_manager = TokenManager()

    def create_session_tokens(self, user_id: int, session_id: uuid.UUID) -> Dict[str, Any]:
        """Create access and refresh tokens for a session."""
        token_data = {
            "user_id": user_id,
            "session_id": str(session_id),
        }

        return {
            "access_token": self.token_manager.create_access_token(token_data),
            "refresh_token": self.token_manager.create_refresh_token(token_data),
            "expires_in": int(
                timedelta(hours=self.token_manager.access_token_expire_hours).total_seconds()
            ),
        }

    def session_expiry(self) -> datetime:
        """Expiry of a new refresh session."""
        return datetime.now(timezone.utc) + timedelta(
            days=self.token_manager.refresh_token_expire_days
        )


# Global instances
password_manager = PasswordManager()
token_manager = TokenManager()
session_manager = SessionManager()
