"""Authentication service layer."""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.models import User, UserRole, UserSession
from pumpflix.auth.schemas import LoginRequest, TokenResponse, UserCreate
from pumpflix.auth.security import password_manager, session_manager, token_manager
from pumpflix.db_types import as_utc
from pumpflix.exceptions import AuthenticationError, ConflictError, ValidationError
from pumpflix.organizations.schemas import TenantCreate
from pumpflix.organizations.service import OrganizationService

logger = structlog.get_logger()


class UserService:
    """User management service."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        return await self.db.get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def register(self, user_data: UserCreate) -> User:
        """Register a user together with its own organization and default tenant."""
        if await self.get_user_by_email(user_data.email):
            raise ConflictError("User with this email already exists")

        is_strong, issues = password_manager.is_password_strong(user_data.password)
        if not is_strong:
            raise ValidationError(f"Password not strong enough: {', '.join(issues)}")

        org_service = OrganizationService(self.db)
        organization = await org_service.create_organization(
            user_data.organization_name or f"{user_data.name}'s Organization"
        )
        tenant = await org_service.create_tenant(
            organization.id, TenantCreate(name="Default", slug="default")
        )

        # The registering user owns the new organization
        user = User(
            email=user_data.email.lower(),
            password_hash=password_manager.hash_password(user_data.password),
            name=user_data.name,
            role=UserRole.ADMIN,
            org_id=organization.id,
            tenant_id=tenant.id,
            uuid=uuid.uuid4(),
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)

        logger.info("User registered", user_id=user.id, email=user.email, org_id=organization.id)
        return user


class AuthenticationService:
    """Authentication service for login, logout and token management."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_service = UserService(db)

    async def authenticate_user(self, login_data: LoginRequest) -> User:
        """Authenticate user with email and password."""
        user = await self.user_service.get_user_by_email(login_data.email)

        if not user:
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        if not password_manager.verify_password(login_data.password, user.password_hash):
            raise AuthenticationError("Invalid email or password")

        return user

    async def login(
        self, login_data: LoginRequest, ip_address: str, user_agent: str
    ) -> Dict[str, Any]:
        """Login user and create a refresh session."""
        user = await self.authenticate_user(login_data)
        return await self.create_user_session(user, ip_address, user_agent)

    async def create_user_session(
        self, user: User, ip_address: str, user_agent: str
    ) -> Dict[str, Any]:
        """Create session record and tokens."""
        user_session = UserSession(
            user_id=user.id,
            session_id=uuid.uuid4(),
            ip_address=ip_address,
            user_agent=user_agent,
            expires_at=session_manager.session_expiry(),
        )
        self.db.add(user_session)

        user.last_login_at = datetime.now(timezone.utc)
        user.last_login_ip = ip_address

        await self.db.commit()

        token_data = session_manager.create_session_tokens(user.id, user_session.session_id)

        logger.info("User logged in", user_id=user.id, ip_address=ip_address)

        return {**token_data, "token_type": "Bearer", "user": user}

    async def get_active_session(self, user_id: int, session_id: str) -> Optional[UserSession]:
        try:
            session_uuid = uuid.UUID(session_id)
        except (TypeError, ValueError):
            return None

        result = await self.db.execute(
            select(UserSession).where(
                UserSession.user_id == user_id,
                UserSession.session_id == session_uuid,
                UserSession.is_active.is_(True),
            )
        )
        session = result.scalar_one_or_none()
        if not session or as_utc(session.expires_at) < datetime.now(timezone.utc):
            return None
        return session

    async def refresh_token(self, refresh_token: str) -> Optional[TokenResponse]:
        """Refresh access token using refresh token."""
        payload = token_manager.verify_token(refresh_token, "refresh")
        if not payload:
            return None

        user = await self.user_service.get_user_by_id(payload.get("user_id"))
        if not user or not user.is_active:
            return None

        session = await self.get_active_session(user.id, payload.get("session_id"))
        if not session:
            return None

        token_data = session_manager.create_session_tokens(user.id, session.session_id)

        session.last_used_at = datetime.now(timezone.utc)
        await self.db.commit()

        return TokenResponse(**token_data)

    async def logout(self, user: User, session_id: Optional[str]) -> None:
        """Deactivate the session the access token belongs to."""
        session = await self.get_active_session(user.id, session_id)
        if session:
            session.is_active = False
            await self.db.commit()

        logger.info("User logged out", user_id=user.id)
