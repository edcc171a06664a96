"""
Local storage for uploaded will documents and video testimonies.

Paths stored in the database are relative to the uploads root. Files are
only served back through the owner-checked document and video routes.
"""
import logging
import uuid
from pathlib import Path
from typing import Optional

import aiofiles

from config.settings import get_uploads_dir

logger = logging.getLogger(__name__)


async def save_upload(user_id: int, will_id: int, filename: str, content: bytes, folder: str = "documents") -> str:
    """
    Write an already-validated upload to disk.

    Returns:
        Path relative to the uploads root, e.g. "12/34/documents/ab12cd34_deed.pdf"
    """
    relative_dir = Path(str(user_id)) / str(will_id) / folder
    target_dir = get_uploads_dir() / relative_dir
    target_dir.mkdir(parents=True, exist_ok=True)

    # Prefix keeps repeated uploads of the same name from overwriting each other
    stored_name = f"{uuid.uuid4().hex[:8]}_{filename}"
    async with aiofiles.open(target_dir / stored_name, "wb") as f:
        await f.write(content)

    logger.info(f"Stored upload {stored_name} ({len(content)} bytes) for will {will_id}")
    return (relative_dir / stored_name).as_posix()


def resolve_stored_path(file_path: str) -> Optional[Path]:
    """Absolute path for a stored file, or None if it would escape the uploads root."""
    root = get_uploads_dir().resolve()
    relative = file_path.removeprefix("/uploads/").lstrip("/")
    path = (root / relative).resolve()
    if not path.is_relative_to(root):
        return None
    return path


def delete_stored_file(file_path: str) -> bool:
    """Remove a stored file. Missing files are not an error."""
    path = resolve_stored_path(file_path)
    if path is None:
        logger.warning(f"Refusing to delete {file_path}: outside the uploads directory")
        return False
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.error(f"Failed to delete stored file {file_path}: {e}")
        return False
