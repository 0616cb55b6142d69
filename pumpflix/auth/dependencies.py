"""FastAPI dependencies for authentication and authorization."""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.models import User
from pumpflix.auth.security import token_manager
from pumpflix.auth.service import AuthenticationService, UserService
from pumpflix.database import get_postgres_session

# Security scheme
bearer_scheme = HTTPBearer(auto_error=False)


class AuthenticationRequired:
    """Dependency to require authentication."""

    def __init__(self, require_active: bool = True):
        self.require_active = require_active

    async def __call__(
        self,
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
        db: AsyncSession = Depends(get_postgres_session)
    ) -> User:
        """Verify authentication and return current user."""

        if not credentials:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required",
                headers={"WWW-Authenticate": "Bearer"},
            )

        payload = token_manager.verify_token(credentials.credentials, "access")
        if not payload:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
                headers={"WWW-Authenticate": "Bearer"},
            )

        user_id = payload.get("user_id")
        if not user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token payload",
                headers={"WWW-Authenticate": "Bearer"},
            )

        user = await UserService(db).get_user_by_id(user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not found",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if self.require_active and not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account is deactivated",
            )

        # Tokens die with their session (logout)
        session_id = payload.get("session_id")
        auth_service = AuthenticationService(db)
        if not await auth_service.get_active_session(user.id, session_id):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Session invalid",
                headers={"WWW-Authenticate": "Bearer"},
            )

        request.state.session_id = session_id
        return user


get_current_user = AuthenticationRequired()


class AdminRequired:
    """Dependency to require the organization admin role."""

    async def __call__(self, user: User = Depends(get_current_user)) -> User:
        """Verify user has admin role."""
        if not user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Admin access required"
            )
        return user


async def get_current_tenant_id(user: User = Depends(get_current_user)) -> int:
    """Active tenant of the current user."""
    if user.tenant_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No active tenant selected",
        )
    return user.tenant_id


# Common dependency instances
get_admin_user = AdminRequired()
