"""
Utility helper functions.
"""


def preview_text(text: str, limit: int = 500) -> str:
    """
    First ``limit`` characters of ``text``, with an ellipsis when cut.

    Example:
        >>> preview_text("abcdef", limit=3)
        'abc...'
    """
    text = text or ""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
