"""
Security utilities for file upload validation and sanitization
"""
import re
from pathlib import Path
from typing import Optional
from fastapi import HTTPException, UploadFile


# Supporting documents attached to a will
DOCUMENT_MIME_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}

# Video testimony recordings
VIDEO_MIME_TYPES = {
    ".webm": "video/webm",
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
}

ALLOWED_EXTENSIONS = list(DOCUMENT_MIME_TYPES)
ALLOWED_VIDEO_EXTENSIONS = list(VIDEO_MIME_TYPES)

# 20MB in bytes
MAX_FILE_SIZE = 20 * 1024 * 1024
# 200MB in bytes
MAX_VIDEO_SIZE = 200 * 1024 * 1024

# Container formats share a signature across several extensions
_COMPATIBLE_SIGNATURES = {
    "application/zip": {".docx"},
    "application/x-ole-storage": {".doc"},
    "video/mp4": {".mp4", ".mov"},
}


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent path traversal attacks.

    Removes:
    - Directory separators (/ and \\)
    - Path traversal sequences (..)
    - Null bytes (\\x00)
    - Any other potentially dangerous characters

    Args:
        filename: Original filename

    Returns:
        Sanitized filename safe for use in file paths
    """
    if not filename:
        raise ValueError("Filename cannot be empty")

    filename = filename.replace("\x00", "")
    filename = filename.replace("/", "").replace("\\", "")
    while ".." in filename:
        filename = filename.replace("..", "")

    # Keep letters, numbers, dots, hyphens, underscores and spaces
    filename = re.sub(r'[^a-zA-Z0-9._\-\s]', '', filename)
    filename = filename.strip('. ')

    if not filename:
        raise ValueError("Filename is invalid after sanitization")

    if len(filename) > 200:
        ext = Path(filename).suffix
        name_without_ext = Path(filename).stem[:200 - len(ext)]
        filename = name_without_ext + ext

    return filename


def get_file_extension(filename: str) -> str:
    """
    Extract file extension from filename (lowercase).

    Returns:
        File extension with leading dot (e.g., ".pdf") or empty string
    """
    return Path(filename).suffix.lower()


def validate_file_extension(filename: str, allowed: list) -> None:
    """
    Validate that file extension is in the whitelist.

    Raises:
        HTTPException: If extension is not allowed
    """
    ext = get_file_extension(filename)
    if ext not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"File extension '{ext}' is not allowed. Allowed extensions: {', '.join(allowed)}"
        )


def detect_mime_type_from_content(content: bytes) -> Optional[str]:
    """
    Detect MIME type from file content using magic bytes.

    Returns:
        Detected MIME type, a container type for zip/OLE/ISO-BMFF files,
        or None if the signature is unknown (e.g. plain text)
    """
    if not content:
        return None

    if content[:5] == b'%PDF-':
        return "application/pdf"
    if content[:8] == b'\x89PNG\r\n\x1a\n':
        return "image/png"
    if content[:3] == b'\xff\xd8\xff':
        return "image/jpeg"
    if content[:4] == b'PK\x03\x04':
        return "application/zip"
    if content[:8] == b'\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1':
        return "application/x-ole-storage"
    if content[:4] == b'\x1a\x45\xdf\xa3':
        return "video/webm"
    if len(content) > 12 and content[4:8] == b'ftyp':
        return "video/mp4"

    return None


def _looks_like_text(content: bytes) -> bool:
    try:
        content[:4096].decode("utf-8")
    except UnicodeDecodeError:
        return False
    return b"\x00" not in content[:4096]


def validate_file_content(content: bytes, filename: str, mime_map: dict, max_size: int) -> str:
    """
    Validate file content (size and signature) against the extension.

    Args:
        content: File content bytes
        filename: Sanitized filename
        mime_map: Extension to MIME type whitelist
        max_size: Maximum size in bytes

    Returns:
        The MIME type to store for the file

    Raises:
        HTTPException: If validation fails
    """
    if len(content) > max_size:
        size_mb = len(content) / (1024 * 1024)
        max_mb = max_size / (1024 * 1024)
        raise HTTPException(
            status_code=400,
            detail=f"File size ({size_mb:.2f}MB) exceeds maximum allowed size ({max_mb:.0f}MB)"
        )

    if len(content) == 0:
        raise HTTPException(status_code=400, detail="File is empty")

    ext = get_file_extension(filename)
    expected_mime = mime_map[ext]
    detected_mime = detect_mime_type_from_content(content)

    if detected_mime is None:
        if expected_mime == "text/plain" and _looks_like_text(content):
            return expected_mime
        raise HTTPException(
            status_code=400,
            detail=f"Could not verify file type. File extension '{ext}' may not be valid."
        )

    if detected_mime == expected_mime or ext in _COMPATIBLE_SIGNATURES.get(detected_mime, set()):
        return expected_mime

    raise HTTPException(
        status_code=400,
        detail=f"File content ({detected_mime}) does not match extension '{ext}'"
    )


async def validate_uploaded_file(file: UploadFile, kind: str = "document") -> tuple[str, bytes, str]:
    """
    Comprehensive validation of uploaded file.

    This function:
    1. Sanitizes the filename
    2. Validates file extension
    3. Reads and validates file content (size and signature)

    Args:
        file: FastAPI UploadFile object
        kind: "document" or "video"

    Returns:
        Tuple of (sanitized_filename, file_content, mime_type)

    Raises:
        HTTPException: If any validation fails
    """
    if kind == "video":
        mime_map, max_size = VIDEO_MIME_TYPES, MAX_VIDEO_SIZE
    else:
        mime_map, max_size = DOCUMENT_MIME_TYPES, MAX_FILE_SIZE

    if not file.filename:
        raise HTTPException(status_code=400, detail="Filename is required")

    try:
        sanitized_filename = sanitize_filename(file.filename)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    validate_file_extension(sanitized_filename, list(mime_map))

    content = await file.read()
    mime_type = validate_file_content(content, sanitized_filename, mime_map, max_size)

    await file.seek(0)

    return sanitized_filename, content, mime_type


def validate_password_strength(password: str) -> None:
    """
    Validate password strength.

    Enforces:
    - Minimum length: 8 characters
    - At least one letter
    - At least one digit (0-9)

    Raises:
        ValueError: If password does not meet strength requirements
    """
    if not password:
        raise ValueError("Password cannot be empty")

    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters long")

    if not re.search(r'[A-Za-z]', password):
        raise ValueError("Password must contain at least one letter")

    if not re.search(r'[0-9]', password):
        raise ValueError("Password must contain at least one digit (0-9)")
