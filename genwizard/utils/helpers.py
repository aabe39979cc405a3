"""
Utility helpers for the generator wizard

Simple utility functions for ID generation, display names and error text.
"""

import re
import traceback
import uuid
from typing import Any


_WORD_PATTERN = re.compile(r"[A-Z]{2,}(?=[A-Z][a-z]|\d|\b|_)|[A-Z]?[a-z]+|[A-Z]+|\d+")


def generate_session_id(short=True):
    """
    Generate unique session identifier

    Args:
        short (bool): If True, return 8-char hex. If False, return full UUID.

    Returns:
        str: Session ID

    Examples:
        >>> generate_session_id()
        'a3f7e2b9'
    """
    full_id = uuid.uuid4().hex
    return full_id[:8] if short else full_id


def generate_request_id():
    """Generate identifier for one transport request."""
    return uuid.uuid4().hex


def start_case(text: str) -> str:
    """
    Convert an identifier to space separated, capitalised words.

    Examples:
        >>> start_case('projectName')
        'Project Name'
        >>> start_case('project_name')
        'Project Name'
        >>> start_case('HTTPPort')
        'HTTP Port'
    """
    words = _WORD_PATTERN.findall(text or "")
    return " ".join(word[0].upper() + word[1:] for word in words)


def get_error_info(error: Any) -> str:
    """
    Normalize an error into a human-readable description.

    Strings pass through unchanged. Exceptions are rendered with their
    type name, message, formatted stack and str() form.

    Args:
        error: Exception instance or message string

    Returns:
        str: Multi-line description
    """
    if isinstance(error, str):
        return error

    name = type(error).__name__
    message = str(error)
    if isinstance(error, BaseException) and error.__traceback__ is not None:
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    else:
        stack = ""

    return f"name: {name}\n message: {message}\n stack: {stack}\n string: {error!r}\n"
