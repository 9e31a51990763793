"""Prompt builders."""

from __future__ import annotations

from typing import Optional


def build_body(input_text: str, message: Optional[str] = None) -> str:
    """Aggregated input, followed by the optional --message text."""
    if not message:
        return input_text
    if not input_text:
        return message
    return f"{input_text}\n\n{message}"


def compose_prompt(instruction: Optional[str], body: str) -> str:
    """Single text payload: instruction first when present, else the body alone."""
    if instruction is None:
        return body
    return f"{instruction}\n\n{body}"
