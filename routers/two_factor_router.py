"""
Two-factor authentication router - TOTP enrolment, verification and disabling
"""

import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, _load_user
from auth_utils import verify_password
from crud.user import UserRepository
from database import get_db
from models.user import (
    TwoFactorTokenRequest,
    TwoFactorVerifyRequest,
    TwoFactorDisableRequest,
    TwoFactorStatusOut,
    TwoFactorSecretOut,
)
from services.notification_service import NotificationService
from services import two_factor_service
from utils.shared_utils import invalidate_cached, log_endpoint_event

logger = logging.getLogger(__name__)

two_factor_router = APIRouter(prefix="/api/2fa", tags=["2fa"])


@two_factor_router.get("/status", response_model=TwoFactorStatusOut)
async def get_status(current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    user = await _load_user(current_user, db)
    return {
        "enabled": user.two_factor_enabled,
        "backup_codes_remaining": len(user.backup_codes or []) if user.two_factor_enabled else 0,
    }


@two_factor_router.api_route("/secret", methods=["GET", "POST"], response_model=TwoFactorSecretOut)
async def create_secret(current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """
    Issue a new pending TOTP secret with its QR code.
    The secret only takes effect once /verify confirms a token generated from it.
    """
    user = await _load_user(current_user, db)
    if user.two_factor_enabled:
        raise HTTPException(status_code=400, detail="Two-factor authentication is already enabled")

    secret = two_factor_service.generate_secret()
    await UserRepository(db).update_user(user, {"two_factor_secret": secret})

    otpauth_url = two_factor_service.provisioning_uri(secret, user.email)
    return {
        "secret": secret,
        "otpauth_url": otpauth_url,
        "qr_code": two_factor_service.qr_code_data_url(otpauth_url),
    }


@two_factor_router.post("/verify")
async def enable_two_factor(
    request: TwoFactorVerifyRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Confirm the pending secret with a token and switch 2FA on. Backup codes are shown once."""
    user = await _load_user(current_user, db)
    if user.two_factor_enabled:
        raise HTTPException(status_code=400, detail="Two-factor authentication is already enabled")

    secret = user.two_factor_secret
    if request.secret and request.secret != secret:
        raise HTTPException(status_code=400, detail="Secret does not match the one issued. Request a new QR code.")
    if not secret:
        raise HTTPException(status_code=400, detail="No pending secret. Request a new QR code first.")
    if not two_factor_service.verify_token(secret, request.token):
        raise HTTPException(status_code=400, detail="Invalid verification code")

    backup_codes = two_factor_service.generate_backup_codes()
    await UserRepository(db).update_user(user, {
        "two_factor_enabled": True,
        "backup_codes": backup_codes,
    })
    invalidate_cached(f"user:{user.id}")
    await NotificationService(db).notify(user.id, "two_factor_enabled")
    log_endpoint_event("/api/2fa/verify", user.id)
    return {"enabled": True, "backupCodes": backup_codes}


@two_factor_router.post("/verify-token")
async def verify_token(
    request: TwoFactorTokenRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Check a token or backup code for an already enabled account (step-up checks)."""
    user = await _load_user(current_user, db)
    if not user.two_factor_enabled:
        raise HTTPException(status_code=400, detail="Two-factor authentication is not enabled")

    ok, remaining = two_factor_service.verify_second_factor(user.two_factor_secret, user.backup_codes, request.token)
    if not ok:
        raise HTTPException(status_code=401, detail="Invalid two-factor code")
    if remaining is not None:
        await UserRepository(db).update_user(user, {"backup_codes": remaining})
    return {"valid": True}


@two_factor_router.post("/disable")
async def disable_two_factor(
    request: TwoFactorDisableRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user = await _load_user(current_user, db)
    if not verify_password(request.password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Password is incorrect")

    if user.two_factor_enabled:
        ok, _ = two_factor_service.verify_second_factor(user.two_factor_secret, user.backup_codes, request.token)
        if not ok:
            raise HTTPException(status_code=401, detail="Invalid two-factor code")

    await UserRepository(db).update_user(user, {
        "two_factor_enabled": False,
        "two_factor_secret": None,
        "backup_codes": None,
    })
    invalidate_cached(f"user:{user.id}")
    await NotificationService(db).notify(user.id, "two_factor_disabled")
    log_endpoint_event("/api/2fa/disable", user.id)
    return {"enabled": False}
