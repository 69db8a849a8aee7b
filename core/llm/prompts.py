"""Prompt construction and suggestion parsing for Gemini requests."""

from __future__ import annotations

import re
from typing import Optional

from core.constants import IMAGE_MARKER, MAX_SUGGESTIONS, MIN_SUGGESTIONS

SUGGESTION_FORMAT_INSTRUCTION = (
    " Return ONLY the questions as a numbered list, with no additional text."
)

_NUMBERED_LINE = re.compile(r"^\s*\d+[.)]\s*(.+?)\s*$")


def build_enhanced_prompt(
    prompt: str,
    context: Optional[str] = None,
    is_suggestion_request: bool = False,
) -> str:
    """Frame the user prompt around optional file context."""
    if not context:
        if is_suggestion_request and SUGGESTION_FORMAT_INSTRUCTION.strip() not in prompt:
            return prompt + SUGGESTION_FORMAT_INSTRUCTION
        return prompt

    if IMAGE_MARKER in context:
        return (
            "The user has shared an image. Analyze the following image "
            "information and answer the question.\n\n"
            f"{context}\n\nQuestion: {prompt}"
        )
    return (
        "Analyze the following content and answer the question based on it.\n\n"
        f"{context}\n\nQuestion: {prompt}"
    )


def build_suggestion_prompt(
    last_question: Optional[str] = None,
    file_context: Optional[str] = None,
) -> str:
    prompt = (
        f"Generate {MIN_SUGGESTIONS} to {MAX_SUGGESTIONS} follow-up questions "
        "that would be useful for the user to ask next. "
    )
    if last_question:
        prompt += f'They previously asked: "{last_question}". '
    if file_context:
        prompt += "Based on the file content they've uploaded: " + file_context
    else:
        prompt += "Suggest general questions that would be good starting points."
    return prompt + SUGGESTION_FORMAT_INSTRUCTION


def parse_suggestions(text: Optional[str]) -> list[str]:
    """Numbered list items from a model answer, at most six, deduplicated."""
    suggestions: list[str] = []
    for line in (text or "").splitlines():
        match = _NUMBERED_LINE.match(line)
        if not match:
            continue
        question = match.group(1).strip()
        if question and question not in suggestions:
            suggestions.append(question)
        if len(suggestions) == MAX_SUGGESTIONS:
            break
    return suggestions


def format_numbered_list(items: list[str]) -> str:
    return "\n".join(f"{index}. {item}" for index, item in enumerate(items, start=1))
