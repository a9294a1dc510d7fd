"""
Text utilities.
"""


def truncate(text: str, max_chars: int) -> str:
    """Truncate text to max_chars (0 = no limit)."""
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars]
