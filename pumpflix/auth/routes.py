"""Authentication API routes."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.dependencies import get_current_user
from pumpflix.auth.models import User
from pumpflix.auth.schemas import (
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    OrganizationSummary,
    RefreshTokenRequest,
    TenantSummary,
    TokenResponse,
    UserCreate,
    UserPublic,
)
from pumpflix.auth.service import AuthenticationService, UserService
from pumpflix.database import get_postgres_session
from pumpflix.organizations.service import OrganizationService

logger = structlog.get_logger()

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _client_info(request: Request) -> tuple[str, str]:
    ip_address = request.client.host if request.client else "unknown"
    return ip_address, request.headers.get("user-agent", "unknown")


@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: UserCreate,
    request: Request,
    db: AsyncSession = Depends(get_postgres_session)
):
    """Register a new user, its organization and a default tenant."""
    user = await UserService(db).register(user_data)

    result = await AuthenticationService(db).create_user_session(user, *_client_info(request))
    return LoginResponse(
        access_token=result["access_token"],
        refresh_token=result["refresh_token"],
        expires_in=result["expires_in"],
        user=UserPublic.model_validate(user),
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_postgres_session)
):
    """Login user with email and password."""
    result = await AuthenticationService(db).login(login_data, *_client_info(request))

    return LoginResponse(
        access_token=result["access_token"],
        refresh_token=result["refresh_token"],
        token_type="Bearer",
        expires_in=result["expires_in"],
        user=UserPublic.model_validate(result["user"]),
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    db: AsyncSession = Depends(get_postgres_session)
):
    """Refresh access token using refresh token."""
    token_response = await AuthenticationService(db).refresh_token(refresh_data.refresh_token)

    if not token_response:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token"
        )

    return token_response


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_postgres_session)
):
    """Invalidate the current session."""
    await AuthenticationService(db).logout(current_user, request.state.session_id)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=MeResponse)
async def get_me(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_postgres_session)
):
    """Get the current user with its organization and active tenant."""
    org_service = OrganizationService(db)
    organization = await org_service.get_organization(current_user.org_id)
    tenant = await org_service.get_tenant(current_user.tenant_id)

    return MeResponse(
        user=UserPublic.model_validate(current_user),
        organization=OrganizationSummary.model_validate(organization),
        tenant=TenantSummary.model_validate(tenant) if tenant else None,
    )
