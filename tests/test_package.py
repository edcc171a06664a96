"""
Tests for will package assembly and download
"""
import io
import zipfile
from unittest.mock import patch

import pytest

from main import app
from routers.wills_router import get_package_assembler
from services.package_service import (
    DocumentPackageAssembler,
    DocumentFetchError,
    PackageDocument,
    PACKAGE_MESSAGE,
    FALLBACK_MESSAGE,
)
from tests.conftest import auth_headers


def _names(result) -> list:
    return zipfile.ZipFile(io.BytesIO(result.content)).namelist()


@pytest.mark.asyncio
async def test_failed_attachment_degrades_only_that_file():
    async def fetcher(document: PackageDocument) -> bytes:
        if document.file_name == "missing.pdf":
            raise DocumentFetchError("gone")
        return b"%PDF-1.4 deed"

    result = await DocumentPackageAssembler(fetcher).assemble(
        title="Family Will",
        content="All to Ana.",
        documents=[
            PackageDocument("deed.pdf", "1/1/documents/deed.pdf"),
            PackageDocument("missing.pdf", "1/1/documents/missing.pdf"),
            PackageDocument("deed.pdf", "1/1/documents/other_deed.pdf"),
        ],
        has_video=True,
        video_url="/api/wills/1/video",
    )

    assert result.is_fallback is False
    assert result.message == PACKAGE_MESSAGE
    assert result.filename == "family_will_package.zip"
    assert result.unavailable == ["missing.pdf"]
    assert sorted(_names(result)) == sorted([
        "will_document.txt",
        "attachments/deed.pdf",
        "attachments/missing.pdf.unavailable.txt",
        "attachments/deed_1.pdf",
        "video_testimony/README.txt",
    ])
    archive = zipfile.ZipFile(io.BytesIO(result.content))
    assert "All to Ana." in archive.read("will_document.txt").decode()


@pytest.mark.asyncio
async def test_any_fetch_error_degrades_only_that_file(uploads_dir):
    """
    Errors other than DocumentFetchError from a single document (a malformed
    URL, a bad path) still produce a zip with a placeholder for that file.
    """
    stored = uploads_dir / "1" / "1" / "documents"
    stored.mkdir(parents=True)
    (stored / "deed.pdf").write_bytes(b"%PDF-1.4 deed")

    result = await DocumentPackageAssembler().assemble(
        title="Family Will",
        content="All to Ana.",
        documents=[
            PackageDocument("deed.pdf", "1/1/documents/deed.pdf"),
            PackageDocument("scan.pdf", "https://[::1"),
        ],
    )

    assert result.is_fallback is False
    assert result.unavailable == ["scan.pdf"]
    archive = zipfile.ZipFile(io.BytesIO(result.content))
    assert archive.read("attachments/deed.pdf") == b"%PDF-1.4 deed"
    assert "attachments/scan.pdf.unavailable.txt" in archive.namelist()


@pytest.mark.asyncio
async def test_unexpected_fetcher_exception_is_contained():
    async def fetcher(document: PackageDocument) -> bytes:
        if document.file_name == "broken.pdf":
            raise ValueError("embedded null byte")
        return b"ok"

    result = await DocumentPackageAssembler(fetcher).assemble(
        title="My Will",
        content="Everything to charity.",
        documents=[PackageDocument("broken.pdf", "x"), PackageDocument("fine.pdf", "y")],
    )

    assert result.is_fallback is False
    assert sorted(_names(result)) == [
        "attachments/broken.pdf.unavailable.txt",
        "attachments/fine.pdf",
        "will_document.txt",
    ]


@pytest.mark.asyncio
async def test_archive_failure_falls_back_to_plain_text():
    async def fetcher(document: PackageDocument) -> bytes:
        return b"ok"

    assembler = DocumentPackageAssembler(fetcher)
    with patch.object(assembler, "_build_zip", side_effect=OSError("disk full")):
        result = await assembler.assemble(
            title="My Will",
            content="Everything to charity.",
            documents=[PackageDocument("deed.pdf", "x")],
        )

    assert result.is_fallback is True
    assert result.message == FALLBACK_MESSAGE
    assert result.filename == "will_document.txt"
    assert result.media_type.startswith("text/plain")
    assert result.unavailable == ["deed.pdf"]
    assert b"Everything to charity." in result.content


@pytest.mark.asyncio
async def test_default_fetcher_refuses_paths_outside_uploads():
    with pytest.raises(DocumentFetchError):
        await DocumentPackageAssembler().fetcher(PackageDocument("passwd", "../../etc/passwd"))


@pytest.mark.asyncio
async def test_package_endpoint_includes_uploaded_document(client, create_user):
    user = await create_user()
    headers = auth_headers(user)
    will = (await client.post("/api/wills", headers=headers, json={"title": "Estate", "content": "All to Ana."})).json()

    upload = await client.post(
        f"/api/wills/{will['id']}/documents",
        headers=headers,
        files={"file": ("notes.txt", b"Safe deposit box 12", "text/plain")},
    )
    assert upload.status_code == 201

    response = await client.get(f"/api/wills/{will['id']}/package", headers=headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    assert response.headers["x-download-message"] == PACKAGE_MESSAGE
    assert 'filename="estate_package.zip"' in response.headers["content-disposition"]

    archive = zipfile.ZipFile(io.BytesIO(response.content))
    assert archive.read("attachments/notes.txt") == b"Safe deposit box 12"


@pytest.mark.asyncio
async def test_package_endpoint_fallback_message(client, create_user):
    user = await create_user()
    headers = auth_headers(user)
    will = (await client.post("/api/wills", headers=headers, json={"content": "All to Ana."})).json()
    await client.post(
        f"/api/wills/{will['id']}/documents",
        headers=headers,
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )

    assembler = DocumentPackageAssembler()
    app.dependency_overrides[get_package_assembler] = lambda: assembler
    with patch.object(assembler, "_build_zip", side_effect=zipfile.BadZipFile("corrupt")):
        response = await client.get(f"/api/wills/{will['id']}/package", headers=headers)

    assert response.status_code == 200
    assert response.headers["x-download-message"] == FALLBACK_MESSAGE
    assert 'filename="will_document.txt"' in response.headers["content-disposition"]
    assert response.text.endswith("All to Ana.")
