"""
Two-factor authentication: TOTP secrets, QR codes and single-use backup codes
"""

import base64
import re
import secrets
import string
from io import BytesIO
from typing import List, Optional, Tuple

import pyotp
import qrcode
import qrcode.constants
from qrcode.main import QRCode

ISSUER_NAME = "WillTank"
# Accept codes from two 30-second steps either side to tolerate clock drift
VALID_WINDOW = 2
BACKUP_CODE_COUNT = 8
_BACKUP_ALPHABET = string.ascii_uppercase + string.digits


def generate_secret() -> str:
    return pyotp.random_base32()


def provisioning_uri(secret: str, email: str) -> str:
    return pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=ISSUER_NAME)


def qr_code_data_url(data: str) -> str:
    """Render `data` as a PNG QR code and return it as a data: URL."""
    qr = QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffered = BytesIO()
    img.save(buffered, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffered.getvalue()).decode()


def normalize_token(token: Optional[str]) -> str:
    """Strip spaces and other separators users paste along with the code."""
    return re.sub(r"\D", "", token or "")


def verify_token(secret: Optional[str], token: Optional[str]) -> bool:
    if not secret:
        return False
    digits = normalize_token(token)
    if len(digits) != 6:
        return False
    return pyotp.TOTP(secret).verify(digits, valid_window=VALID_WINDOW)


def generate_backup_codes(count: int = BACKUP_CODE_COUNT) -> List[str]:
    """Codes look like ABCD-1234."""
    codes = []
    for _ in range(count):
        raw = "".join(secrets.choice(_BACKUP_ALPHABET) for _ in range(8))
        codes.append(f"{raw[:4]}-{raw[4:]}")
    return codes


def consume_backup_code(codes: Optional[List[str]], supplied: Optional[str]) -> Tuple[bool, List[str]]:
    """
    Check a backup code and remove it from the list if it matches.

    Returns:
        (matched, remaining codes)
    """
    remaining = list(codes or [])
    candidate = (supplied or "").strip().upper()
    if len(candidate) == 8 and "-" not in candidate:
        candidate = f"{candidate[:4]}-{candidate[4:]}"
    if candidate in remaining:
        remaining.remove(candidate)
        return True, remaining
    return False, remaining


def verify_second_factor(secret: Optional[str], codes: Optional[List[str]], supplied: Optional[str]) -> Tuple[bool, Optional[List[str]]]:
    """
    Accept either a TOTP token or a backup code.

    Returns:
        (ok, updated backup codes or None when no code was consumed)
    """
    if verify_token(secret, supplied):
        return True, None
    matched, remaining = consume_backup_code(codes, supplied)
    if matched:
        return True, remaining
    return False, None
