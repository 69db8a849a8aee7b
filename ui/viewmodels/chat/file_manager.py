"""FileManager - Workspace files, URL references and LLM context."""

from __future__ import annotations

import logging
import mimetypes
from datetime import datetime
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse
import uuid

from PySide6.QtCore import QObject, Signal

from core.constants import CONTEXT_FILE_LIMIT
from core.errors import KatagrafyError, NotFoundError
from core.models import WorkspaceFile
from core.persistence import BlobStore, FileRepository, build_storage_path
from core.services.content_extraction import ContentExtractor

logger = logging.getLogger(__name__)

UNAVAILABLE_CONTENT = "Content not available for processing"


def newest_files(files: list[WorkspaceFile], limit: int = CONTEXT_FILE_LIMIT) -> list[WorkspaceFile]:
    """The ``limit`` most recently uploaded files, newest first."""
    return sorted(files, key=lambda f: f.uploaded_at, reverse=True)[:limit]


def format_context_entry(file: WorkspaceFile, content: Optional[str]) -> str:
    return f"File: {file.name}\n{content or UNAVAILABLE_CONTENT}\n\n"


class FileManager(QObject):
    """
    Manages the file list of the active workspace.

    Stored files go to the blob store and the files table. URL references
    are kept in memory only and disappear on workspace reload.

    Signals:
        files_changed(object): Current list of WorkspaceFile
        preview_loaded(str, str): file id, extracted text
    """

    files_changed = Signal(object)
    preview_loaded = Signal(str, str)

    def __init__(
        self,
        file_repository: FileRepository,
        blob_store: BlobStore,
        extractor: ContentExtractor,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._file_repository = file_repository
        self._blob_store = blob_store
        self._extractor = extractor
        self._files: list[WorkspaceFile] = []

    @property
    def files(self) -> list[WorkspaceFile]:
        """Copy of the current file list."""
        return list(self._files)

    def get(self, file_id: str) -> Optional[WorkspaceFile]:
        for file in self._files:
            if file.id == file_id:
                return file
        return None

    def fetch_workspace(self, workspace_id: str) -> list[WorkspaceFile]:
        return self._file_repository.get_by_workspace(workspace_id)

    def apply_files(self, files: list[WorkspaceFile]) -> None:
        self._files = list(files)
        self.files_changed.emit(self.files)

    def load_workspace(self, workspace_id: str) -> None:
        self.apply_files(self.fetch_workspace(workspace_id))

    def clear(self) -> None:
        self._files = []
        self.files_changed.emit([])

    def upload_bytes(
        self,
        name: str,
        mime_type: str,
        data: bytes,
        workspace_id: str,
        user_id: str,
    ) -> WorkspaceFile:
        """Store a file's bytes and metadata, then add it to the list."""
        path = build_storage_path(user_id, workspace_id, name)
        replaced = [f for f in self._files if f.path == path]
        self._blob_store.upload(path, data)
        file = WorkspaceFile(
            id=str(uuid.uuid4()),
            name=name,
            size=len(data),
            type=mime_type or "application/octet-stream",
            url="",
            workspace_id=workspace_id,
            user_id=user_id,
            uploaded_at=datetime.now(),
            path=path,
        )
        try:
            self._file_repository.create(file)
        except KatagrafyError:
            if not replaced:
                self._blob_store.remove([path])
            raise

        # Re-uploading the same name replaces the stored blob
        for old in replaced:
            try:
                self._file_repository.delete(old.id)
            except NotFoundError:
                logger.debug("Replaced file record %s was already gone", old.id)
        self._files = [f for f in self._files if f.path != path]
        self._files.append(file)
        self.files_changed.emit(self.files)
        return file

    def upload_path(self, file_path: Path, workspace_id: str, user_id: str) -> WorkspaceFile:
        """Upload a local file, guessing its MIME type from the name."""
        try:
            data = file_path.read_bytes()
        except OSError as exc:
            raise NotFoundError(f"Could not read {file_path.name}: {exc}") from exc
        mime_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
        return self.upload_bytes(file_path.name, mime_type, data, workspace_id, user_id)

    def add_url(self, url: str, workspace_id: str, user_id: str) -> WorkspaceFile:
        """Add an external link as a local-only pseudo-file.

        Raises:
            ValueError: if the URL is not http(s).
        """
        url = url.strip()
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Not a valid web address: {url}")
        file = WorkspaceFile.create_url_reference(url, workspace_id, user_id)
        self._files.append(file)
        self.files_changed.emit(self.files)
        return file

    def delete(self, file_id: str) -> None:
        """Remove a file; URL references only leave local state."""
        file = self.get(file_id)
        if file is None:
            logger.info("File %s is not in the current list", file_id)
            return

        if not file.is_url_reference:
            if file.path:
                self._blob_store.remove([file.path])
            try:
                self._file_repository.delete(file_id)
            except NotFoundError:
                logger.info("File %s already deleted", file_id)

        self._files = [f for f in self._files if f.id != file_id]
        self.files_changed.emit(self.files)

    def build_context(self, files: Optional[list[WorkspaceFile]] = None) -> str:
        """Context block from the most recently uploaded files.

        Args:
            files: Snapshot to read from; defaults to the current list.
        """
        selected = newest_files(self._files if files is None else files)
        entries = [format_context_entry(f, self._content_for(f)) for f in selected]
        context = "".join(entries)
        if context:
            logger.debug(
                "Built context from %d of %d files (%d chars)",
                len(selected),
                len(self._files if files is None else files),
                len(context),
            )
        return context

    def load_preview(self, file_id: str) -> str:
        """Extract and cache a file's text for the viewer."""
        file = self.get(file_id)
        if file is None:
            raise NotFoundError(f"File {file_id} not found")
        content = self._content_for(file)
        self.preview_loaded.emit(file_id, content)
        return content

    def _content_for(self, file: WorkspaceFile) -> str:
        if file.content is None:
            file.content = self._extractor.extract(file)
        return file.content
