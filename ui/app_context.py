"""
Application wiring for Katagrafy.

Builds the database, repositories, blob store, content extractor, LLM
client and the top-level viewmodels from an AppConfig.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from core.config import AppConfig, LLM_MODE_DIRECT, load_config
from core.errors import AuthConfigurationError
from core.llm import DirectTransport, LLMClient, ProxyTransport, get_chat_model
from core.logging_config import configure_logging
from core.persistence import (
    BlobStore,
    Database,
    FileRepository,
    MessageRepository,
    PreferencesRepository,
    ProfileRepository,
    SessionRepository,
    SettingsRepository,
    ShareRepository,
    WorkspaceRepository,
)
from core.services import ContentExtractor
from ui.viewmodels.chat import ChatCoordinator
from ui.viewmodels.settings import ChatPreferences
from ui.viewmodels.workspace_viewmodel import WorkspaceViewModel

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a UI needs for one signed-in user."""

    config: AppConfig
    database: Database
    blob_store: BlobStore
    chat: ChatCoordinator
    workspaces: WorkspaceViewModel
    preferences: ChatPreferences
    llm_client: LLMClient
    extractor: ContentExtractor
    backend_available: bool

    def close(self) -> None:
        self.chat.cancel_generation()
        self.chat.completion.wait_for_workers()
        self.llm_client.close()
        self.extractor.close()
        self.database.close()


def build_llm_client(config: AppConfig) -> LLMClient:
    """Proxy through the backend when possible, else call Gemini directly."""
    if config.has_backend and config.llm_mode != LLM_MODE_DIRECT:
        return LLMClient(
            ProxyTransport(
                config.backend_url,
                config.backend_anon_key,
                timeout=config.request_timeout,
            )
        )
    logger.info("Using direct Gemini mode")
    chat_model = get_chat_model(config.gemini_api_key, timeout=config.request_timeout)
    return LLMClient(DirectTransport(chat_model))


def build_app_context(
    user_id: str,
    config: Optional[AppConfig] = None,
    run_in_background: bool = True,
    setup_logging: bool = True,
) -> AppContext:
    config = config or load_config()
    if setup_logging:
        configure_logging(config.log_dir)

    backend_available = True
    try:
        config.require_backend()
    except AuthConfigurationError as exc:
        logger.error("%s Shared features are unavailable.", exc.message)
        backend_available = False

    database = Database(config.database_path, timeout=config.request_timeout)
    blob_store = BlobStore(config.storage_root)
    extractor = ContentExtractor(
        blob_store=blob_store,
        backend_url=config.backend_url if backend_available else None,
        anon_key=config.backend_anon_key,
        timeout=config.request_timeout,
    )
    file_repository = FileRepository(database, blob_store)
    llm_client = build_llm_client(config)

    chat = ChatCoordinator(
        user_id=user_id,
        session_repository=SessionRepository(database),
        message_repository=MessageRepository(database),
        file_repository=file_repository,
        share_repository=ShareRepository(database),
        profile_repository=ProfileRepository(database),
        blob_store=blob_store,
        extractor=extractor,
        llm_client=llm_client,
        run_in_background=run_in_background,
    )
    workspaces = WorkspaceViewModel(
        user_id,
        WorkspaceRepository(database),
        file_repository,
        blob_store,
        chat,
    )
    preferences = ChatPreferences(
        user_id,
        SettingsRepository(database),
        PreferencesRepository(database),
        blob_store,
    )

    logger.info("Application context ready for user %s", user_id)
    return AppContext(
        config=config,
        database=database,
        blob_store=blob_store,
        chat=chat,
        workspaces=workspaces,
        preferences=preferences,
        llm_client=llm_client,
        extractor=extractor,
        backend_available=backend_available,
    )
