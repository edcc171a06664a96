"""
Document Package Assembler - builds the downloadable will archive

Layout of the archive:
    will_document.txt
    attachments/<file name>                     one per fetched document
    attachments/<file name>.unavailable.txt     placeholder when a fetch fails
    video_testimony/README.txt                  only when a video was recorded

A failed fetch degrades only that file. If building the archive itself
fails, the will text alone is returned as a plain-text download.
"""

import io
import logging
import zipfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence

import aiofiles
import httpx

from utils.file_storage import resolve_stored_path

logger = logging.getLogger(__name__)

PACKAGE_MESSAGE = "Will package download complete."
FALLBACK_MESSAGE = "Basic download complete. Attachments were not included."
WILL_TEXT_NAME = "will_document.txt"


@dataclass
class PackageDocument:
    file_name: str
    file_path: str
    file_type: str = "application/octet-stream"


@dataclass
class PackageResult:
    content: bytes
    filename: str
    media_type: str
    message: str
    is_fallback: bool
    unavailable: List[str]


class DocumentFetchError(Exception):
    """Raised when an attachment cannot be retrieved."""


Fetcher = Callable[[PackageDocument], Awaitable[bytes]]


def _slug(title: str) -> str:
    cleaned = "".join(c if c.isalnum() else "_" for c in (title or "will").strip())
    return cleaned.strip("_").lower() or "will"


async def fetch_stored_document(document: PackageDocument) -> bytes:
    """
    Default fetcher: http(s) URLs over httpx, anything else from the uploads root.

    Raises:
        DocumentFetchError: If the document cannot be read
    """
    location = document.file_path
    if location.startswith(("http://", "https://")):
        try:
            async with httpx.AsyncClient(follow_redirects=True, timeout=30.0) as client:
                response = await client.get(location)
        except httpx.HTTPError as e:
            raise DocumentFetchError(f"Could not download {document.file_name}: {e}") from e
        if not response.is_success:
            raise DocumentFetchError(f"Could not download {document.file_name}: HTTP {response.status_code}")
        return response.content

    path = resolve_stored_path(location)
    if path is None:
        raise DocumentFetchError(f"Refusing to read {document.file_name} outside the uploads directory")
    try:
        async with aiofiles.open(path, "rb") as f:
            return await f.read()
    except OSError as e:
        raise DocumentFetchError(f"Could not read {document.file_name}: {e}") from e


class DocumentPackageAssembler:
    """Builds will packages; the fetcher is injectable for tests and alternate storage."""

    def __init__(self, fetcher: Optional[Fetcher] = None):
        self.fetcher = fetcher or fetch_stored_document

    def _will_text(self, title: str, content: str) -> str:
        header = f"{title or 'My Will'}\nGenerated by WillTank on {datetime.utcnow():%Y-%m-%d %H:%M} UTC\n\n"
        return header + (content or "")

    async def _collect_attachments(self, documents: Sequence[PackageDocument]) -> tuple[list, list]:
        """Fetch each document; a failure yields a placeholder entry instead of aborting."""
        entries = []
        unavailable = []
        used_names = set()
        for document in documents:
            name = Path(document.file_name).name or "document"
            candidate = name
            counter = 1
            while candidate in used_names:
                stem, suffix = Path(name).stem, Path(name).suffix
                candidate = f"{stem}_{counter}{suffix}"
                counter += 1
            used_names.add(candidate)

            try:
                data = await self.fetcher(document)
                entries.append((f"attachments/{candidate}", data))
            except Exception as e:
                logger.warning(f"Attachment {document.file_name} unavailable for package: {e}")
                unavailable.append(document.file_name)
                entries.append((
                    f"attachments/{candidate}.unavailable.txt",
                    (
                        f"The document '{document.file_name}' could not be retrieved when this package was created.\n"
                        "Download it separately from your WillTank dashboard.\n"
                    ).encode("utf-8"),
                ))
        return entries, unavailable

    def _build_zip(self, will_text: str, entries: list, has_video: bool, video_url: Optional[str]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as z:
            z.writestr(WILL_TEXT_NAME, will_text)
            for arcname, data in entries:
                z.writestr(arcname, data)
            if has_video:
                readme = (
                    "Your video testimony is stored securely with your will in WillTank.\n"
                    "It is not included in this download because of its size.\n"
                )
                if video_url:
                    readme += f"Recording: {video_url}\n"
                z.writestr("video_testimony/README.txt", readme)
        return buffer.getvalue()

    async def assemble(
        self,
        title: str,
        content: str,
        documents: Sequence[PackageDocument],
        has_video: bool = False,
        video_url: Optional[str] = None,
    ) -> PackageResult:
        """
        Build the package for a will.

        Returns:
            A zip PackageResult, or the plain-text fallback if archive creation failed
        """
        will_text = self._will_text(title, content)
        slug = _slug(title)
        entries, unavailable = await self._collect_attachments(documents)
        try:
            archive = self._build_zip(will_text, entries, has_video, video_url)
        except Exception as e:
            logger.error(f"Will package assembly failed, falling back to plain text: {e}", exc_info=True)
            return PackageResult(
                content=will_text.encode("utf-8"),
                filename=WILL_TEXT_NAME,
                media_type="text/plain; charset=utf-8",
                message=FALLBACK_MESSAGE,
                is_fallback=True,
                unavailable=[d.file_name for d in documents],
            )

        return PackageResult(
            content=archive,
            filename=f"{slug}_package.zip",
            media_type="application/zip",
            message=PACKAGE_MESSAGE,
            is_fallback=False,
            unavailable=unavailable,
        )
