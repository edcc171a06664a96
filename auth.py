"""
Authentication routes and dependencies
"""

from datetime import datetime
from types import SimpleNamespace
from typing import Optional
from fastapi import APIRouter, HTTPException, Header, Depends, Cookie
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
import re
import logging

from database import get_db
from crud.user import UserRepository
from database_models import User
from auth_utils import (
    hash_password,
    verify_password,
    create_jwt,
    decode_jwt,
    generate_verification_code,
    generate_reset_token,
    code_matches,
    VERIFICATION_CODE_TTL,
    LOGIN_CODE_TTL,
    RESET_TOKEN_TTL,
)
from models.user import (
    RegisterRequest,
    VerifyEmailRequest,
    EmailRequest,
    LoginCodeRequest,
    LoginRequest,
    ResetPasswordRequest,
    ChangePasswordRequest,
    OnboardingRequest,
    UserOut,
    RegisterResponse,
)
from services.email_service import EmailService
from services.notification_service import NotificationService
from services.two_factor_service import verify_second_factor
from utils.shared_utils import get_cached, invalidate_cached, log_endpoint_event
from utils.security_utils import validate_password_strength
from config.settings import IS_PRODUCTION

logger = logging.getLogger(__name__)

# Create auth router
auth_router = APIRouter(prefix="/api", tags=["auth"])

# JWT expiration is 7 days = 604800 seconds
COOKIE_MAX_AGE = 604800
GENERIC_RESET_MESSAGE = "If an account exists for that email, a password reset link has been sent."


def validate_email(email: str) -> bool:
    """Validate email format"""
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email) is not None


def _user_out(user: User) -> dict:
    return UserOut.model_validate(user).model_dump(mode="json", by_alias=True)


def _session_response(user: User, content: dict, status_code: int = 200) -> JSONResponse:
    """Build a JSON response that also sets the httpOnly auth cookie."""
    token = create_jwt(str(user.id))
    response = JSONResponse(status_code=status_code, content=content)
    response.set_cookie(
        key="auth_token",
        value=token,
        httponly=True,
        secure=IS_PRODUCTION,
        samesite="Lax",
        max_age=COOKIE_MAX_AGE
    )
    return response


@auth_router.post("/register", status_code=201)
async def register(request: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create an unverified account and email a verification code"""
    email = request.username.strip().lower()
    if not validate_email(email):
        raise HTTPException(status_code=400, detail="Invalid email format")

    try:
        validate_password_strength(request.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    user_repo = UserRepository(db)
    if await user_repo.get_user_by_email(email):
        raise HTTPException(status_code=400, detail="Email already registered")

    code = generate_verification_code()
    user = await user_repo.create_user({
        "email": email,
        "hashed_password": hash_password(request.password),
        "full_name": request.full_name,
        "verification_code": code,
        "verification_code_expiry": datetime.utcnow() + VERIFICATION_CODE_TTL,
    })
    await EmailService().send_verification_code(email, code)
    log_endpoint_event("/api/register", user.id)

    return RegisterResponse(
        id=user.id,
        username=user.email,
        is_email_verified=False,
        message="Registration successful. Please check your email for a verification code.",
    ).model_dump(by_alias=True)


@auth_router.post("/verify-email")
async def verify_email(request: VerifyEmailRequest, db: AsyncSession = Depends(get_db)):
    """Confirm the emailed code and sign the user in"""
    user_repo = UserRepository(db)
    user = await user_repo.get_user_by_email(request.email)
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired verification code")
    if user.is_email_verified:
        return {"message": "Email already verified"}
    if not code_matches(user.verification_code, user.verification_code_expiry, request.code):
        raise HTTPException(status_code=400, detail="Invalid or expired verification code")

    await user_repo.update_user(user, {
        "is_email_verified": True,
        "verification_code": None,
        "verification_code_expiry": None,
    })
    invalidate_cached(f"user:{user.id}")
    await NotificationService(db).notify(user.id, "email_verified")
    log_endpoint_event("/api/verify-email", user.id)
    return _session_response(user, {"message": "Email verified successfully", "user": _user_out(user)})


@auth_router.post("/resend-verification")
async def resend_verification(request: EmailRequest, db: AsyncSession = Depends(get_db)):
    """Issue a fresh verification code"""
    user_repo = UserRepository(db)
    user = await user_repo.get_user_by_email(request.email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.is_email_verified:
        raise HTTPException(status_code=400, detail="Email already verified")

    code = generate_verification_code()
    await user_repo.update_user(user, {
        "verification_code": code,
        "verification_code_expiry": datetime.utcnow() + VERIFICATION_CODE_TTL,
    })
    await EmailService().send_verification_code(user.email, code)
    return {"message": "Verification code sent"}


@auth_router.post("/request-login-code")
async def request_login_code(request: LoginCodeRequest, db: AsyncSession = Depends(get_db)):
    """Email a one-time sign-in code to a verified account"""
    user_repo = UserRepository(db)
    user = await user_repo.get_user_by_email(request.username)
    if not user or not user.is_active:
        raise HTTPException(status_code=404, detail="User not found")
    if not user.is_email_verified:
        raise HTTPException(status_code=403, detail="Please verify your email before signing in")

    code = generate_verification_code()
    await user_repo.update_user(user, {
        "verification_code": code,
        "verification_code_expiry": datetime.utcnow() + LOGIN_CODE_TTL,
    })
    await EmailService().send_login_code(user.email, code)
    return {"message": "Login code sent to your email"}


@auth_router.post("/login")
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Password + emailed code, plus a TOTP token or backup code when 2FA is on"""
    user_repo = UserRepository(db)
    user = await user_repo.get_user_by_email(request.username)
    if not user or not verify_password(request.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User account is inactive")
    if not user.is_email_verified:
        raise HTTPException(status_code=403, detail="Please verify your email before signing in")
    if not code_matches(user.verification_code, user.verification_code_expiry, request.verification_code):
        raise HTTPException(status_code=401, detail="Invalid or expired login code")

    updates = {"verification_code": None, "verification_code_expiry": None}
    if user.two_factor_enabled:
        if not request.two_factor_token:
            return JSONResponse(
                status_code=401,
                content={"detail": "Two-factor authentication code required", "requiresTwoFactor": True},
            )
        ok, remaining_codes = verify_second_factor(user.two_factor_secret, user.backup_codes, request.two_factor_token)
        if not ok:
            raise HTTPException(status_code=401, detail="Invalid two-factor authentication code")
        if remaining_codes is not None:
            updates["backup_codes"] = remaining_codes

    await user_repo.update_user(user, updates)
    log_endpoint_event("/api/login", user.id)
    return _session_response(user, _user_out(user))


@auth_router.post("/forgot-password")
async def forgot_password(request: EmailRequest, db: AsyncSession = Depends(get_db)):
    """Always answers the same way so account existence is not revealed"""
    user_repo = UserRepository(db)
    user = await user_repo.get_user_by_email(request.email)
    if user and user.is_active:
        token = generate_reset_token()
        await user_repo.update_user(user, {
            "reset_password_token": token,
            "reset_password_expiry": datetime.utcnow() + RESET_TOKEN_TTL,
        })
        await EmailService().send_password_reset(user.email, token)
    return {"message": GENERIC_RESET_MESSAGE}


@auth_router.post("/reset-password")
async def reset_password(request: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    user_repo = UserRepository(db)
    user = await user_repo.get_user_by_reset_token(request.token)
    if not user or not code_matches(user.reset_password_token, user.reset_password_expiry, request.token):
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    try:
        validate_password_strength(request.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await user_repo.update_user(user, {
        "hashed_password": hash_password(request.password),
        "reset_password_token": None,
        "reset_password_expiry": None,
    })
    await NotificationService(db).notify(user.id, "password_changed")
    return {"message": "Password has been reset. You can now sign in."}


@auth_router.post("/logout")
async def logout():
    """Logout and clear auth token cookie"""
    response = JSONResponse(content={"message": "Logged out successfully"})
    response.set_cookie(
        key="auth_token",
        value="",
        httponly=True,
        secure=IS_PRODUCTION,
        samesite="Lax",
        max_age=0
    )
    return response


async def _get_user_data_with_caching(user_id: int, user_repo: UserRepository) -> dict:
    """
    Helper function to fetch the fields the auth dependency needs, with caching.

    Raises:
        HTTPException: If user is not found
    """
    async def fetch_user():
        user = await user_repo.get_user_by_id(user_id)
        if not user:
            raise HTTPException(status_code=401, detail="User not found")
        return {
            "id": user.id,
            "email": user.email,
            "is_active": user.is_active,
            "is_email_verified": user.is_email_verified,
        }

    return await get_cached(
        key=f"user:{user_id}",
        fallback_func=fetch_user,
        ttl_seconds=300
    )


# Dependency for protected routes
async def get_current_user(
    auth_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    Dependency function to get current authenticated user.

    Authentication priority:
    1. Check auth_token cookie first (httpOnly cookie set by login)
    2. Fallback to Authorization header (Bearer token) for API consumers
    3. Raise 401 if neither is found
    """
    token = None
    if auth_token:
        token = auth_token
    elif authorization and authorization.startswith("Bearer "):
        token = authorization.replace("Bearer ", "").strip()

    if not token:
        raise HTTPException(status_code=401, detail="Missing authentication token")

    payload = decode_jwt(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    # JWT stores the user ID as a string
    try:
        user_id = int(user_id_str)
    except (ValueError, TypeError):
        raise HTTPException(status_code=401, detail="Invalid user ID in token")

    user_repo = UserRepository(db)
    user = SimpleNamespace(**await _get_user_data_with_caching(user_id, user_repo))

    if not user.is_active:
        raise HTTPException(status_code=401, detail="User account is inactive")

    return {
        "user_id": user.id,
        "email": user.email,
        "is_active": user.is_active,
        "is_email_verified": user.is_email_verified,
    }


async def get_optional_user(
    auth_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_db)
) -> Optional[dict]:
    """Like get_current_user, but anonymous callers get None instead of a 401."""
    if not auth_token and not (authorization and authorization.startswith("Bearer ")):
        return None
    try:
        return await get_current_user(auth_token, authorization, db)
    except HTTPException:
        return None


async def _load_user(current_user: dict, db: AsyncSession) -> User:
    user = await UserRepository(db).get_user_by_id(current_user["user_id"])
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@auth_router.get("/user")
async def get_user(current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Current user profile"""
    return _user_out(await _load_user(current_user, db))


@auth_router.post("/change-password")
async def change_password(
    request: ChangePasswordRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user = await _load_user(current_user, db)
    if not verify_password(request.current_password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    try:
        validate_password_strength(request.new_password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await UserRepository(db).update_user(user, {"hashed_password": hash_password(request.new_password)})
    await NotificationService(db).notify(user.id, "password_changed")
    log_endpoint_event("/api/change-password", user.id)
    return {"message": "Password changed successfully"}


@auth_router.post("/user/onboarding")
async def complete_onboarding(
    request: OnboardingRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user = await _load_user(current_user, db)
    updates = {"has_completed_onboarding": request.completed}
    if request.preferences is not None:
        updates["preferences"] = {**(user.preferences or {}), **request.preferences}
    user = await UserRepository(db).update_user(user, updates)
    return _user_out(user)
