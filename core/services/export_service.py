"""Chat export to spreadsheets and plain text.

Spreadsheets hold one sheet per session with the columns Index, Role,
Content and Timestamp. Plain text exports cover a single conversation.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from openpyxl import Workbook

from core.constants import EXPORT_MAX_SESSIONS, PRODUCT_NAME, SHEET_NAME_MAX_LENGTH
from core.models import ChatMessage, ChatSession, MessageRole, most_recent_first

logger = logging.getLogger(__name__)

_INVALID_SHEET_CHARS = re.compile(r"[\\/\[\]*?:]")
_UNSAFE_FILENAME_CHARS = re.compile(r'[/\\?%*:|"<>]')

_HEADERS = ("Index", "Role", "Content", "Timestamp")
_COLUMN_WIDTHS = {"A": 6, "B": 10, "C": 80, "D": 20}
_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def spreadsheet_file_name(day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"{PRODUCT_NAME}_Chats_{day.isoformat()}.xlsx"


def sanitize_sheet_name(title: str, position: int) -> str:
    """Strip characters Excel rejects and cap the length.

    Args:
        title: Session title.
        position: 1-based position, used to name untitled sessions.
    """
    name = _INVALID_SHEET_CHARS.sub("", title or "").strip()[:SHEET_NAME_MAX_LENGTH]
    return name or f"Chat {position}"


def _unique_sheet_name(name: str, used: set[str]) -> str:
    if name.lower() not in used:
        return name
    counter = 2
    while True:
        suffix = f" ({counter})"
        candidate = name[: SHEET_NAME_MAX_LENGTH - len(suffix)] + suffix
        if candidate.lower() not in used:
            return candidate
        counter += 1


def _format_role(role: MessageRole) -> str:
    return role.value.capitalize()


def export_to_spreadsheet(
    sessions: list[ChatSession],
    output_dir: Path,
    max_sessions: int = EXPORT_MAX_SESSIONS,
    day: Optional[date] = None,
) -> int:
    """Write the most recent sessions to an .xlsx workbook.

    Sessions are expected to carry their messages. Nothing is written when
    ``sessions`` is empty.

    Returns:
        Number of sessions exported.
    """
    selected = most_recent_first(sessions)[:max(max_sessions, 0)]
    if not selected:
        return 0

    workbook = Workbook()
    workbook.remove(workbook.active)
    used_names: set[str] = set()

    for position, session in enumerate(selected, start=1):
        sheet_name = _unique_sheet_name(
            sanitize_sheet_name(session.title, position), used_names
        )
        used_names.add(sheet_name.lower())
        sheet = workbook.create_sheet(title=sheet_name)
        sheet.append(_HEADERS)
        for index, message in enumerate(session.messages, start=1):
            sheet.append(
                (
                    index,
                    _format_role(message.role),
                    message.content,
                    message.timestamp.strftime(_TIMESTAMP_FORMAT),
                )
            )
        for column, width in _COLUMN_WIDTHS.items():
            sheet.column_dimensions[column].width = width

    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / spreadsheet_file_name(day)
    workbook.save(target)
    logger.info("Exported %d chat sessions to %s", len(selected), target)
    return len(selected)


def export_session_text(
    session: ChatSession,
    messages: list[ChatMessage],
    output_dir: Path,
    day: Optional[date] = None,
) -> Path:
    """Write one conversation as a plain text transcript."""
    day = day or date.today()
    safe_title = _UNSAFE_FILENAME_CHARS.sub("_", session.title or "chat")
    target = output_dir / f"{safe_title}_{day.isoformat()}.txt"

    lines = [session.title, f"Exported {datetime.now().strftime(_TIMESTAMP_FORMAT)}", ""]
    for message in messages:
        speaker = "You" if message.role == MessageRole.USER else "Assistant"
        lines.append(f"[{message.timestamp.strftime(_TIMESTAMP_FORMAT)}] {speaker}:")
        lines.append(message.content)
        lines.append("")

    output_dir.mkdir(parents=True, exist_ok=True)
    target.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Exported session %s to %s", session.id, target)
    return target
