"""Services for content extraction and chat export."""

from core.services.content_extraction import ContentExtractor, truncate_content
from core.services.export_service import export_session_text, export_to_spreadsheet

__all__ = [
    "ContentExtractor",
    "truncate_content",
    "export_session_text",
    "export_to_spreadsheet",
]
