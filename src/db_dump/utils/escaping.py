"""String literal escaping for the target SQL dialect."""

# Applied in order. The backslash must come first so that the backslashes
# inserted by later replacements are not escaped again.
ESCAPE_SEQUENCES: tuple[tuple[str, str], ...] = (
    ("\\", "\\\\"),
    ("\x00", "\\0"),
    ("\t", "\\t"),
    ("\b", "\\b"),
    ("\n", "\\n"),
    ("\r", "\\r"),
    ("\x1a", "\\Z"),
    ("'", "''"),
)


def escape(raw: str) -> str:
    """
    Escape text for embedding inside a single-quoted SQL string literal.

    Args:
        raw: Unescaped text

    Returns:
        Escaped text (without the surrounding quotes)
    """
    escaped = raw
    for target, replacement in ESCAPE_SEQUENCES:
        escaped = escaped.replace(target, replacement)
    return escaped


def quote(raw: str) -> str:
    """Escape text and wrap it in single quotes."""
    return f"'{escape(raw)}'"
