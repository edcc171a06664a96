"""
Authentication utilities: password hashing, JWT tokens and one-time codes
"""

import hmac
import secrets
import jwt
from datetime import datetime, timedelta
from typing import Optional
from passlib.context import CryptContext
from config.settings import settings

# Password hashing context
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto"
)

# JWT configuration
ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(days=7)

# One-time code lifetimes
VERIFICATION_CODE_TTL = timedelta(minutes=30)
LOGIN_CODE_TTL = timedelta(minutes=10)
RESET_TOKEN_TTL = timedelta(minutes=60)


def hash_password(password: str) -> str:
    """Hash a password using argon2"""
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(password, password_hash)


def create_jwt(user_id: str) -> str:
    """Create a JWT token for a user"""
    if not settings.jwt_secret_key:
        raise ValueError("JWT_SECRET_KEY is not set. Cannot create JWT token.")

    payload = {
        "sub": user_id,
        "exp": datetime.utcnow() + TOKEN_LIFETIME
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=ALGORITHM)


def decode_jwt(token: str):
    """Decode a JWT token. Returns None if invalid."""
    if not settings.jwt_secret_key:
        raise ValueError("JWT_SECRET_KEY is not set. Cannot decode JWT token.")

    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def create_expired_jwt(user_id: str, expired_seconds_ago: int = 1) -> str:
    """
    Create an expired JWT token for testing purposes.

    Args:
        user_id: User ID to include in token
        expired_seconds_ago: How many seconds ago the token should have expired (default: 1)

    Returns:
        Expired JWT token string

    Raises:
        ValueError: If JWT_SECRET_KEY is not set
    """
    if not settings.jwt_secret_key:
        raise ValueError("JWT_SECRET_KEY is not set. Cannot create JWT token.")

    payload = {
        "sub": user_id,
        "exp": datetime.utcnow() - timedelta(seconds=expired_seconds_ago)
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=ALGORITHM)


def generate_verification_code() -> str:
    """Six-digit numeric code for email verification and login."""
    return f"{secrets.randbelow(1_000_000):06d}"


def generate_reset_token() -> str:
    """64 hex characters (32 random bytes)."""
    return secrets.token_hex(32)


def code_matches(expected: Optional[str], expiry: Optional[datetime], supplied: str) -> bool:
    """
    Check a one-time code against the stored value and its expiry.
    Comparison is constant-time; a missing code or expiry never matches.
    """
    if not expected or not expiry or not supplied:
        return False
    if expiry < datetime.utcnow():
        return False
    return hmac.compare_digest(expected, supplied.strip())
