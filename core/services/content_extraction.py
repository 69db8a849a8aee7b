"""
Best-effort text extraction for workspace files and URL references.

Extracted text is forwarded to the LLM as context. Nothing in here raises
to the caller: every failure becomes a short placeholder string.
"""

from __future__ import annotations

import io
import logging
from pathlib import PurePosixPath
from typing import Optional

import httpx
from pypdf import PdfReader

from core.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    FETCH_URL_FUNCTION_NAME,
    IMAGE_MARKER,
    MAX_CONTENT_CHARS,
    PDF_MAX_PAGES,
    TEXT_EXTENSIONS,
    TEXT_MIME_TYPES,
    TRUNCATION_MARKER,
)
from core.errors import ContentExtractionError, KatagrafyError
from core.models import WorkspaceFile
from core.persistence.blob_store import BlobStore

logger = logging.getLogger(__name__)


def truncate_content(text: str, limit: int = MAX_CONTENT_CHARS) -> str:
    """Cap text at ``limit`` characters and append the truncation marker."""
    if len(text) <= limit:
        return text
    logger.debug("Truncating extracted content from %d to %d chars", len(text), limit)
    return text[:limit] + TRUNCATION_MARKER


def image_placeholder(name: str) -> str:
    return (
        f"{IMAGE_MARKER} {name}] This is an image. Its pixels are not included "
        "here; ask a specific question about the image to have it analyzed."
    )


def unsupported_placeholder(name: str) -> str:
    return f"(File uploaded: {name}, unsupported for preview)"


def url_failure_message(url: str) -> str:
    return (
        f"Unable to fetch content from {url}. The site may block cross-origin "
        "requests or require a login. Download the page and upload it as a "
        "file instead."
    )


def _normalize_mime(mime_type: Optional[str]) -> str:
    return (mime_type or "").split(";", 1)[0].strip().lower()


def is_text_type(name: str, mime_type: Optional[str]) -> bool:
    mime = _normalize_mime(mime_type)
    if mime.startswith("text/") or mime in TEXT_MIME_TYPES:
        return True
    return PurePosixPath(name.lower()).suffix in TEXT_EXTENSIONS


def is_pdf_type(name: str, mime_type: Optional[str]) -> bool:
    return _normalize_mime(mime_type) == "application/pdf" or name.lower().endswith(".pdf")


def is_image_type(mime_type: Optional[str]) -> bool:
    return _normalize_mime(mime_type).startswith("image/")


def extract_pdf_text(data: bytes, max_pages: int = PDF_MAX_PAGES) -> str:
    """Concatenate the text of the first ``max_pages`` pages.

    Raises:
        ContentExtractionError: if the document cannot be parsed.
    """
    try:
        reader = PdfReader(io.BytesIO(data))
        total_pages = len(reader.pages)
        parts = []
        for index in range(min(total_pages, max_pages)):
            page_text = reader.pages[index].extract_text() or ""
            parts.append(f"Page {index + 1}:\n{page_text.strip()}\n")
    except Exception as exc:
        raise ContentExtractionError(f"Could not parse PDF: {exc}") from exc

    text = "\n".join(parts)
    if total_pages > max_pages:
        text += (
            f"\n[PDF truncated: showing the first {max_pages} "
            f"of {total_pages} pages]"
        )
    return text


class ContentExtractor:
    """Turns stored files, raw bytes and URLs into prompt context."""

    def __init__(
        self,
        blob_store: Optional[BlobStore] = None,
        backend_url: Optional[str] = None,
        anon_key: Optional[str] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ):
        self._blobs = blob_store
        self._backend_url = backend_url.rstrip("/") if backend_url else None
        self._anon_key = anon_key
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    def close(self) -> None:
        self._client.close()

    def extract(self, file: WorkspaceFile) -> str:
        """Extract text for a workspace file or URL reference."""
        if file.is_url_reference:
            return self.extract_url(file.url)
        try:
            data = self._read_file_bytes(file)
        except (KatagrafyError, httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Could not read %s for extraction: %s", file.name, exc)
            return "Unable to extract content for processing."
        return self.extract_bytes(file.name, file.type, data)

    def _read_file_bytes(self, file: WorkspaceFile) -> bytes:
        if file.path and self._blobs is not None:
            return self._blobs.read(file.path)
        if file.url.startswith(("http://", "https://")):
            response = self._client.get(file.url)
            response.raise_for_status()
            return response.content
        raise ContentExtractionError(f"No readable source for {file.name}")

    def extract_bytes(self, name: str, mime_type: Optional[str], data: bytes) -> str:
        """Classify raw content by MIME type or extension and extract text."""
        if is_image_type(mime_type):
            return image_placeholder(name)
        if is_pdf_type(name, mime_type):
            try:
                text = extract_pdf_text(data)
            except ContentExtractionError as exc:
                logger.warning("PDF extraction failed for %s: %s", name, exc)
                return f'(PDF file uploaded: "{name}" - Content preview unavailable)'
            return truncate_content(text)
        if is_text_type(name, mime_type):
            return truncate_content(data.decode("utf-8", errors="replace"))
        return unsupported_placeholder(name)

    def extract_url(self, url: str) -> str:
        """Fetch a URL through the backend first, then directly."""
        if self._backend_url:
            try:
                return self._fetch_via_backend(url)
            except (ContentExtractionError, httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
                logger.info("Server-side fetch failed for %s: %s", url, exc)

        try:
            response = self._client.get(url)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Direct fetch failed for %s: %s", url, exc)
            return url_failure_message(url)

        mime_type = response.headers.get("content-type", "")
        if not mime_type or _normalize_mime(mime_type) == "application/octet-stream":
            if not is_pdf_type(url, None):
                mime_type = "text/plain"
        return self.extract_bytes(url, mime_type, response.content)

    def _fetch_via_backend(self, url: str) -> str:
        endpoint = f"{self._backend_url}/functions/v1/{FETCH_URL_FUNCTION_NAME}"
        headers = {"Content-Type": "application/json"}
        if self._anon_key:
            headers["Authorization"] = f"Bearer {self._anon_key}"
        response = self._client.post(endpoint, json={"url": url}, headers=headers)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ContentExtractionError("Unexpected fetch result")
        if payload.get("error") or payload.get("content") is None:
            raise ContentExtractionError(payload.get("error") or "Empty fetch result")

        content_type = payload.get("contentType", "text/plain")
        if is_image_type(content_type):
            return image_placeholder(url)
        return truncate_content(str(payload["content"]))
