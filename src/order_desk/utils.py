"""
Small helpers shared by the controller, the error normalizer and the API.

This module provides helper functions for:
- Clamping page numbers into the range a result set allows
- Pluralizing counts for user-facing summaries
- Extracting a displayable message from an arbitrary failure
"""

from __future__ import annotations


def clamp(value: int, lower: int, upper: int) -> int:
    """
    Constrain an integer to an inclusive range.

    Args:
        value: The number to constrain
        lower: Smallest allowed value
        upper: Largest allowed value; values below ``lower`` are raised to it

    Returns:
        ``value`` moved into ``[lower, max(lower, upper)]``

    Example:
        >>> clamp(7, 1, 3)
        3
        >>> clamp(4, 1, 0)
        1
    """
    return max(lower, min(value, max(lower, upper)))


def pluralize(count: int, noun: str) -> str:
    """
    Format a count with a naively pluralized noun.

    Example:
        >>> pluralize(1, "error")
        "1 error"
        >>> pluralize(2, "warning")
        "2 warnings"
    """
    return f"{count} {noun}{'s' if count != 1 else ''}"


def error_message(failure: object, fallback: str) -> str:
    """
    Get the text to show for a failure.

    Args:
        failure: An exception, a plain string, or anything else
        fallback: Returned when the failure carries no usable text

    Returns:
        The failure's own message when it has one, otherwise ``fallback``
    """
    if isinstance(failure, str):
        return failure.strip() or fallback
    if isinstance(failure, BaseException):
        return str(failure).strip() or fallback
    return fallback
