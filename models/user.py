"""
Authentication and account models
"""
from datetime import datetime
from typing import Optional
from pydantic import Field

from models.common import CamelModel


class RegisterRequest(CamelModel):
    username: str = Field(..., description="Email address used as the login identifier")
    password: str
    full_name: Optional[str] = None


class VerifyEmailRequest(CamelModel):
    email: str
    code: str


class EmailRequest(CamelModel):
    email: str


class LoginCodeRequest(CamelModel):
    username: str


class LoginRequest(CamelModel):
    username: str
    password: str
    verification_code: str
    two_factor_token: Optional[str] = None


class ResetPasswordRequest(CamelModel):
    token: str
    password: str


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str


class OnboardingRequest(CamelModel):
    completed: bool = True
    preferences: Optional[dict] = None


class UserOut(CamelModel):
    id: int
    email: str
    full_name: Optional[str] = None
    is_email_verified: bool
    two_factor_enabled: bool
    has_completed_onboarding: bool
    plan_type: Optional[str] = None
    plan_interval: Optional[str] = None
    subscription_status: Optional[str] = None
    created_at: datetime


class RegisterResponse(CamelModel):
    id: int
    username: str
    is_email_verified: bool
    message: str


class TwoFactorTokenRequest(CamelModel):
    token: str


class TwoFactorVerifyRequest(CamelModel):
    token: str
    secret: Optional[str] = None


class TwoFactorDisableRequest(CamelModel):
    password: str
    token: Optional[str] = None


class TwoFactorStatusOut(CamelModel):
    enabled: bool
    backup_codes_remaining: int = 0


class TwoFactorSecretOut(CamelModel):
    secret: str
    otpauth_url: str
    qr_code: str
