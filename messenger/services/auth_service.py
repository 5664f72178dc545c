"""Account lifecycle: registration, login, sessions and OTP verification."""

from typing import Optional, Tuple
from uuid import UUID

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from messenger.clients.base_email_client import BaseEmailClient
from messenger.config import Settings
from messenger.database import atomic
from messenger.errors import (
    BadRequestError,
    ConflictError,
    InvalidOrExpiredCodeError,
    InvalidTokenError,
    NotFoundError,
    UnauthorizedError,
    UnavailableError,
)
from messenger.logging import get_logger
from messenger.models.api.users import (
    CurrentUserResponse,
    LoginRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    TokenPairResponse,
    UserResponse,
)
from messenger.repositories.token_repository import RevokedTokenRepository
from messenger.repositories.user_repository import UserRepository
from messenger.services.otp_service import OtpService, utcnow
from messenger.services.password_hasher import MAX_PASSWORD_BYTES, PasswordHasher
from messenger.services.token_service import TokenService

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 8
INVALID_CREDENTIALS = "Invalid credentials"


def normalize_email(email: str) -> str:
    """Validate the address syntax and return its normalized lower-case form.

    Raises:
        BadRequestError: If the address is malformed
    """
    try:
        result = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise BadRequestError("Email not correct!") from e
    return result.normalized.lower()


class AuthService:
    """Session orchestrator over the credential store, OTP engine and tokens."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        email_client: BaseEmailClient,
        token_service: Optional[TokenService] = None,
        hasher: Optional[PasswordHasher] = None,
    ):
        self.db = db
        self.settings = settings
        self.email_client = email_client
        self.token_service = token_service or TokenService(settings)
        self.hasher = hasher or PasswordHasher(settings.bcrypt_rounds)
        self.user_repo = UserRepository(db)
        self.token_repo = RevokedTokenRepository(db)
        self.otp_service = OtpService(db, ttl_seconds=settings.otp_ttl_seconds)

    async def register(self, request: RegisterRequest) -> RegisterResponse:
        """Create a pending identity and send it a verification code.

        The identity and its code are written in one transaction. Delivery
        happens after commit; ``otp_sent`` reports whether it succeeded.
        """
        email, username, password = self._validate_registration(request)

        if await self.user_repo.exists_by_email_or_username(email, username):
            logger.info("registration_conflict")
            raise ConflictError("User already exists")

        password_hash = await run_in_threadpool(self.hasher.hash, password)

        # A concurrent registration for the same email or username trips the
        # unique constraints and surfaces as the same ConflictError
        async with atomic(self.db):
            user = await self.user_repo.create_user(email, username, password_hash)
            code = await self.otp_service.issue(user.id)

        logger.info("user_registered", user_id=str(user.id))
        otp_sent = await self._deliver_otp(user.email, code)
        return RegisterResponse(id=user.id, otp_sent=otp_sent)

    async def login(self, request: LoginRequest) -> TokenPairResponse:
        """Check credentials and issue an access/refresh token pair.

        Unknown email and wrong password fail identically.
        """
        if not request.email or not request.password:
            raise BadRequestError("Email and password are required")
        email = normalize_email(request.email)

        credentials = await self.user_repo.get_credentials_by_email(email)
        if credentials is None:
            await run_in_threadpool(self.hasher.dummy_verify, request.password)
            logger.info("login_failed")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        user, password_hash = credentials
        if not await run_in_threadpool(
            self.hasher.verify, request.password, password_hash
        ):
            logger.info("login_failed", user_id=str(user.id))
            raise UnauthorizedError(INVALID_CREDENTIALS)

        logger.info("login_succeeded", user_id=str(user.id), status=user.status.value)
        return TokenPairResponse(
            access_token=self.token_service.issue_access_token(user),
            refresh_token=self.token_service.issue_refresh_token(user),
            access_expires_in=self.settings.access_token_ttl_seconds,
            refresh_expires_in=self.settings.refresh_token_ttl_seconds,
        )

    async def logout(self, refresh_token: Optional[str]) -> None:
        """Revoke a refresh token. Revoking an already revoked token succeeds."""
        if not refresh_token:
            raise BadRequestError("Refresh token is required")

        claims = self.token_service.verify_refresh_token(refresh_token)
        if await self.user_repo.get_by_id(claims.user_id) is None:
            raise NotFoundError("User not found")

        try:
            async with atomic(self.db):
                if not await self.token_repo.is_revoked(claims.jti):
                    await self.token_repo.revoke(
                        claims.jti, claims.user_id, claims.expires_at, utcnow()
                    )
        except InvalidTokenError:
            # A concurrent logout revoked the same token first
            logger.info("logout_raced", user_id=str(claims.user_id))

        logger.info("logged_out", user_id=str(claims.user_id))

    async def refresh_token(self, refresh_token: Optional[str]) -> RefreshResponse:
        """Exchange a refresh token for a new access token and refresh token.

        The presented token is revoked in the same transaction, so replaying it
        (even concurrently) fails with InvalidTokenError.
        """
        if not refresh_token:
            raise UnauthorizedError("Refresh token is required")

        claims = self.token_service.verify_refresh_token(refresh_token)

        async with atomic(self.db):
            if await self.token_repo.is_revoked(claims.jti):
                logger.warning("refresh_token_reused", user_id=str(claims.user_id))
                raise InvalidTokenError("Refresh token has been revoked")

            user = await self.user_repo.get_by_id(claims.user_id)
            if user is None:
                raise NotFoundError("User not found")

            await self.token_repo.revoke(
                claims.jti, claims.user_id, claims.expires_at, utcnow()
            )

        logger.info("token_refreshed", user_id=str(user.id))
        return RefreshResponse(
            access_token=self.token_service.issue_access_token(user),
            refresh_token=self.token_service.issue_refresh_token(user),
            access_expires_in=self.settings.access_token_ttl_seconds,
        )

    async def send_otp(self, user: UserResponse) -> None:
        """Send a fresh code to an authenticated identity."""
        await self.otp_service.send_by_email(user, self.email_client)

    async def resend_otp(self, email: Optional[str]) -> None:
        """Send a fresh code to a pending identity looked up by email.

        Unknown and already active addresses are ignored so the endpoint
        cannot be used to probe for accounts.
        """
        if not email:
            raise BadRequestError("Email is required")

        user = await self.user_repo.get_by_email(normalize_email(email))
        if user is None or user.is_active:
            logger.info("otp_resend_skipped")
            return
        await self.otp_service.send_by_email(user, self.email_client)

    async def verify_otp(self, user: UserResponse, code: Optional[str]) -> None:
        if not code:
            raise BadRequestError("Code is required")
        async with atomic(self.db):
            await self.otp_service.verify(user.id, code)

    async def verify_otp_by_email(
        self, email: Optional[str], code: Optional[str]
    ) -> None:
        if not email or not code:
            raise BadRequestError("Email and OTP are required")

        user = await self.user_repo.get_by_email(normalize_email(email))
        if user is None:
            raise InvalidOrExpiredCodeError()
        async with atomic(self.db):
            await self.otp_service.verify(user.id, code)

    async def get_current_user(self, user_id: UUID) -> CurrentUserResponse:
        user = await self.user_repo.get_with_profile(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def delete_account(self, user: UserResponse) -> None:
        """Tombstone the identity. Its email and username stay reserved."""
        async with atomic(self.db):
            deleted = await self.user_repo.soft_delete(user.id, utcnow())
        if not deleted:
            raise NotFoundError("User not found")
        logger.info("account_deleted", user_id=str(user.id))

    async def _deliver_otp(self, email: str, code: str) -> bool:
        try:
            await self.otp_service.deliver(email, code, self.email_client)
        except UnavailableError:
            logger.warning("otp_delivery_failed", channel="email")
            return False
        return True

    def _validate_registration(self, request: RegisterRequest) -> Tuple[str, str, str]:
        raw_email = request.email or ""
        username = (request.username or "").strip()
        password = request.password or ""
        if not (raw_email and username and password and request.confirm_password):
            raise BadRequestError("All fields are required")

        email = normalize_email(raw_email)
        if len(username) > 100:
            raise BadRequestError("Username is too long")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise BadRequestError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise BadRequestError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        if password != request.confirm_password:
            raise BadRequestError("Passwords do not match")
        return email, username, password
