"""FastAPI dependencies for authentication and shared collaborators."""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from messenger.clients.base_email_client import BaseEmailClient
from messenger.clients.email_provider_client import EmailProviderClient
from messenger.config import Settings, get_settings
from messenger.database import get_db
from messenger.errors import ForbiddenError, UnauthorizedError
from messenger.models.api.users import UserResponse
from messenger.repositories.user_repository import UserRepository
from messenger.services.auth_service import AuthService
from messenger.services.token_service import TokenService

# auto_error=False so a missing header goes through our own 401 response
bearer_scheme = HTTPBearer(auto_error=False)


def get_token_service(settings: Settings = Depends(get_settings)) -> TokenService:
    return TokenService(settings)


def get_email_client(settings: Settings = Depends(get_settings)) -> BaseEmailClient:
    return EmailProviderClient(
        base_url=settings.email_provider_url,
        api_key=settings.email_provider_api_key,
        from_address=settings.email_from_address,
    )


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    email_client: BaseEmailClient = Depends(get_email_client),
    token_service: TokenService = Depends(get_token_service),
) -> AuthService:
    return AuthService(db, settings, email_client, token_service=token_service)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Authorization token is required")
    return credentials.credentials


async def get_current_identity(
    token: str = Depends(get_bearer_token),
    token_service: TokenService = Depends(get_token_service),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Resolve the access token into the acting identity, pending or active.

    Only the OTP endpoints accept a pending identity.

    Raises:
        UnauthorizedError: If the token is invalid or the identity is gone
    """
    claims = token_service.verify_access_token(token)
    user = await UserRepository(db).get_by_id(claims.user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    return user


async def get_active_identity(
    user: UserResponse = Depends(get_current_identity),
) -> UserResponse:
    """Require the acting identity to have completed OTP verification.

    Raises:
        ForbiddenError: If the identity is still pending
    """
    if not user.is_active:
        raise ForbiddenError("Account is not verified")
    return user


async def get_optional_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    token_service: TokenService = Depends(get_token_service),
    db: AsyncSession = Depends(get_db),
) -> Optional[UserResponse]:
    """Like ``get_current_identity`` but None when no token was presented."""
    if credentials is None or not credentials.credentials:
        return None
    return await get_current_identity(credentials.credentials, token_service, db)
