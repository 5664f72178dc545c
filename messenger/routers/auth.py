from typing import Optional

from fastapi import APIRouter, Body, Depends, status

from messenger.dependencies import (
    get_active_identity,
    get_auth_service,
    get_bearer_token,
    get_optional_identity,
)
from messenger.models.api.base import DetailResponse
from messenger.models.api.users import (
    CurrentUserResponse,
    LoginRequest,
    LogoutRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    SendOtpRequest,
    TokenPairResponse,
    UserResponse,
    VerifyOtpRequest,
)
from messenger.services.auth_service import AuthService

router = APIRouter()


@router.post(
    "/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED
)
async def register(
    request: RegisterRequest, service: AuthService = Depends(get_auth_service)
) -> RegisterResponse:
    """Create a pending account and email it a verification code."""
    return await service.register(request)


@router.post("/login", response_model=TokenPairResponse)
async def login(
    request: LoginRequest, service: AuthService = Depends(get_auth_service)
) -> TokenPairResponse:
    return await service.login(request)


@router.post("/logout", response_model=DetailResponse)
async def logout(
    request: LogoutRequest, service: AuthService = Depends(get_auth_service)
) -> DetailResponse:
    await service.logout(request.refresh_token)
    return DetailResponse(message="Logged out successfully")


@router.post("/send-otp", response_model=DetailResponse)
async def send_otp(
    request: Optional[SendOtpRequest] = Body(default=None),
    user: Optional[UserResponse] = Depends(get_optional_identity),
    service: AuthService = Depends(get_auth_service),
) -> DetailResponse:
    """
    Send a fresh verification code.

    With a Bearer access token the code goes to the authenticated account;
    otherwise to the pending account registered under ``email``.
    """
    if user is not None:
        await service.send_otp(user)
    else:
        await service.resend_otp(request.email if request else None)
    return DetailResponse(message="OTP sent successfully")


@router.post("/verify-otp", response_model=DetailResponse)
async def verify_otp(
    request: VerifyOtpRequest,
    user: Optional[UserResponse] = Depends(get_optional_identity),
    service: AuthService = Depends(get_auth_service),
) -> DetailResponse:
    """
    Verify a code and activate the account.

    Accepts either a Bearer access token with ``code``, or ``email`` with
    ``otp``.
    """
    if user is not None:
        await service.verify_otp(user, request.code or request.otp)
    else:
        await service.verify_otp_by_email(request.email, request.otp or request.code)
    return DetailResponse(message="OTP verified successfully")


@router.post("/refresh-token", response_model=RefreshResponse)
async def refresh_token(
    token: str = Depends(get_bearer_token),
    service: AuthService = Depends(get_auth_service),
) -> RefreshResponse:
    """Rotate the refresh token presented as the Bearer credential."""
    return await service.refresh_token(token)


@router.get("/me", response_model=CurrentUserResponse)
async def get_me(
    user: UserResponse = Depends(get_active_identity),
    service: AuthService = Depends(get_auth_service),
) -> CurrentUserResponse:
    return await service.get_current_user(user.id)


@router.delete("/me", response_model=DetailResponse)
async def delete_me(
    user: UserResponse = Depends(get_active_identity),
    service: AuthService = Depends(get_auth_service),
) -> DetailResponse:
    await service.delete_account(user)
    return DetailResponse(message="Account deleted successfully")
