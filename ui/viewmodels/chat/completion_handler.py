"""CompletionHandler - The send pipeline from user message to assistant reply."""

import logging
from typing import Optional
from uuid import uuid4

from PySide6.QtCore import QObject, Signal, Slot

from core.errors import KatagrafyError, LLMError
from core.llm.client import LLMClient
from core.models import ChatMessage, MessageRole
from core.persistence import MessageRepository
from ui.viewmodels.chat.completion_worker import CompletionWorker
from ui.viewmodels.chat.file_manager import FileManager
from ui.viewmodels.chat.session_manager import SessionManager

logger = logging.getLogger(__name__)


class CompletionHandler(QObject):
    """Persists the user message, asks the LLM and stores the reply.

    The user message is written first and then shown right away; the
    assistant reply is shown only after it was produced. Runs inline by
    default, or in a CompletionWorker when ``run_in_background`` is set.

    Signals:
        is_processing_changed(bool): Emitted when a send starts or ends
        status_changed(str): Emitted with a short status text
        response_received(object): Emitted with the assistant ChatMessage
        error_occurred(str): Emitted with a user-facing error message
    """

    is_processing_changed = Signal(bool)
    status_changed = Signal(str)
    response_received = Signal(object)
    error_occurred = Signal(str)

    def __init__(
        self,
        message_repository: MessageRepository,
        llm_client: LLMClient,
        session_manager: SessionManager,
        file_manager: FileManager,
        run_in_background: bool = False,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._message_repository = message_repository
        self._llm_client = llm_client
        self._sessions = session_manager
        self._files = file_manager
        self._run_in_background = run_in_background

        self._is_processing = False
        self._error: Optional[str] = None
        self._workers: list[CompletionWorker] = []
        self._active_run_token: Optional[str] = None
        self._active_session_id: Optional[str] = None

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    @property
    def error(self) -> Optional[str]:
        """Message of the last failed send, cleared when a new send starts."""
        return self._error

    def _set_processing(self, processing: bool) -> None:
        if self._is_processing != processing:
            self._is_processing = processing
            self.is_processing_changed.emit(processing)

    def send(self, session_id: str, content: str) -> Optional[ChatMessage]:
        """Run the send pipeline for one message.

        Returns:
            The assistant message when run inline, None when the reply will
            arrive through ``response_received``.

        Raises:
            PersistenceError: if the user message could not be stored.
            LLMError: if the inline LLM call failed. The user message stays.
        """
        if self._is_processing:
            logger.info("Ignoring send while a reply is pending")
            return None

        user_message = ChatMessage.create(
            session_id=session_id,
            role=MessageRole.USER,
            content=content,
        )
        self._message_repository.add(user_message)
        self._sessions.append_message(user_message)

        self._error = None
        self._set_processing(True)
        self.status_changed.emit("Processing...")
        files = self._files.files

        if self._run_in_background:
            self._start_worker(session_id, content, files)
            return None

        try:
            context = self._files.build_context(files)
            answer = self._llm_client.ask(content, context or None)
            return self._store_answer(session_id, answer)
        except LLMError as exc:
            self._report_failure(exc)
            raise
        finally:
            self._set_processing(False)

    def _start_worker(self, session_id: str, content: str, files: list) -> None:
        run_token = str(uuid4())
        self._active_run_token = run_token
        self._active_session_id = session_id

        worker = CompletionWorker(
            self._llm_client,
            content,
            lambda: self._files.build_context(files),
            run_token,
        )
        worker.completed.connect(self._on_completed)
        worker.failed.connect(self._on_failed)
        worker.finished.connect(lambda: self._cleanup_worker(worker))
        self._workers.append(worker)
        worker.start()

    def _cleanup_worker(self, worker: CompletionWorker) -> None:
        if worker in self._workers:
            self._workers.remove(worker)
            worker.deleteLater()

    @Slot(str, str)
    def _on_completed(self, answer: str, run_token: str) -> None:
        if run_token != self._active_run_token:
            logger.info("Discarding reply from cancelled run %s", run_token)
            return
        self._active_run_token = None
        try:
            self._store_answer(self._active_session_id, answer)
        finally:
            self._set_processing(False)

    @Slot(object, str)
    def _on_failed(self, error: LLMError, run_token: str) -> None:
        if run_token != self._active_run_token:
            return
        self._active_run_token = None
        self._set_processing(False)
        self._report_failure(error)

    def _store_answer(self, session_id: str, answer: str) -> ChatMessage:
        assistant_message = ChatMessage.create(
            session_id=session_id,
            role=MessageRole.ASSISTANT,
            content=answer,
        )
        try:
            self._message_repository.add(assistant_message)
        except KatagrafyError as exc:
            # The reply still shows for this session until the next reload.
            logger.error("Failed to save assistant reply: %s", exc.message)
            self.error_occurred.emit(f"The reply could not be saved: {exc.message}")
        self._sessions.append_message(assistant_message)
        self.status_changed.emit("Ready")
        self.response_received.emit(assistant_message)
        return assistant_message

    def _report_failure(self, error: LLMError) -> None:
        logger.warning("LLM request failed: %s", error.message)
        self._error = error.message
        self.status_changed.emit("Error")
        self.error_occurred.emit(error.message)

    @Slot()
    def cancel_generation(self) -> None:
        """Stop waiting for the running reply; it is discarded on arrival."""
        if self._active_run_token is None:
            return
        logger.info("Cancelling run %s", self._active_run_token)
        self._active_run_token = None
        self._set_processing(False)
        self.status_changed.emit("Cancelled")

    def wait_for_workers(self, timeout_ms: int = 30000) -> None:
        """Block until background workers finish, used on shutdown."""
        for worker in list(self._workers):
            worker.wait(timeout_ms)
