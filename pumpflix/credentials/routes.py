"""Credential API routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.dependencies import get_current_user
from pumpflix.auth.models import User
from pumpflix.credentials.models import CredentialProvider
from pumpflix.credentials.schemas import (
    CredentialCreate,
    CredentialDetail,
    CredentialSummary,
    CredentialUpdate,
    CredentialUsageCreate,
    CredentialUsageResponse,
    CredentialValidation,
)
from pumpflix.credentials.service import CredentialService
from pumpflix.database import get_postgres_session

router = APIRouter(prefix="/credentials", tags=["Credentials"])


def get_credential_service(db: AsyncSession = Depends(get_postgres_session)) -> CredentialService:
    """Get credential service instance."""
    return CredentialService(db)


@router.post("", response_model=CredentialSummary, status_code=status.HTTP_201_CREATED)
async def create_credential(
    data: CredentialCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: CredentialService = Depends(get_credential_service),
):
    """Store a credential. Secrets are never returned here."""
    ip_address = request.client.host if request.client else None
    return await service.create_credential(current_user, data, ip_address=ip_address)


@router.get("", response_model=List[CredentialSummary])
async def list_credentials(
    provider: Optional[CredentialProvider] = Query(None, description="Filter by provider"),
    current_user: User = Depends(get_current_user),
    service: CredentialService = Depends(get_credential_service),
):
    """List active credentials of the organization."""
    return await service.list_credentials(current_user, provider)


@router.get("/{credential_id}", response_model=CredentialDetail)
async def get_credential(
    credential_id: int,
    current_user: User = Depends(get_current_user),
    service: CredentialService = Depends(get_credential_service),
):
    """Get a credential with its decrypted secrets."""
    return await service.get_credential(credential_id, current_user)


@router.patch("/{credential_id}", response_model=CredentialSummary)
async def update_credential(
    credential_id: int,
    data: CredentialUpdate,
    current_user: User = Depends(get_current_user),
    service: CredentialService = Depends(get_credential_service),
):
    """Update a credential."""
    return await service.update_credential(credential_id, current_user, data)


@router.delete("/{credential_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_credential(
    credential_id: int,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: CredentialService = Depends(get_credential_service),
):
    """Deactivate a credential."""
    ip_address = request.client.host if request.client else None
    await service.delete_credential(credential_id, current_user, ip_address=ip_address)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{credential_id}/validate", response_model=CredentialValidation)
async def validate_credential(
    credential_id: int,
    current_user: User = Depends(get_current_user),
    service: CredentialService = Depends(get_credential_service),
):
    """Check that a credential has not expired."""
    credential = await service.validate_credential(credential_id, current_user)
    return CredentialValidation(valid=True, expires_at=credential.expires_at)


@router.post(
    "/{credential_id}/usage",
    response_model=CredentialUsageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_credential_usage(
    credential_id: int,
    data: CredentialUsageCreate,
    current_user: User = Depends(get_current_user),
    service: CredentialService = Depends(get_credential_service),
):
    """Record a use of a credential."""
    return await service.record_usage(credential_id, current_user, data)
