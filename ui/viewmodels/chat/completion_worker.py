"""CompletionWorker QThread for running the LLM call off the UI thread."""

import logging
from typing import Callable

from PySide6.QtCore import QThread, Signal

from core.errors import LLMError
from core.llm.client import LLMClient

logger = logging.getLogger(__name__)


class CompletionWorker(QThread):
    """Builds file context and asks the LLM in a worker thread.

    Signals:
        completed: Emitted with (answer, run_token)
        failed: Emitted with (LLMError, run_token)
    """

    completed = Signal(str, str)
    failed = Signal(object, str)

    def __init__(
        self,
        llm_client: LLMClient,
        prompt: str,
        build_context: Callable[[], str],
        run_token: str,
    ):
        super().__init__()
        self.llm_client = llm_client
        self.prompt = prompt
        self.build_context = build_context
        self.run_token = run_token

    def run(self):
        try:
            context = self.build_context()
            answer = self.llm_client.ask(self.prompt, context or None)
        except LLMError as e:
            self.failed.emit(e, self.run_token)
        except Exception as e:
            logger.exception("Completion failed: %s", e)
            self.failed.emit(LLMError(str(e) or None), self.run_token)
        else:
            self.completed.emit(answer, self.run_token)
