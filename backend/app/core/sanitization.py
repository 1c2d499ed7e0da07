"""
Sanitizing for user-provided text: upload filenames, log lines, column
names and anything interpolated into a language-model prompt.
"""
import re

_CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f-\x9f]')
_LINE_BREAKS = re.compile(r'[\r\n]')

# Phrases a dataset could use to pose as a new instruction to the model
PROMPT_MARKERS = ('SYSTEM:', 'USER:', 'ASSISTANT:', 'IGNORE', 'FORGET', 'NEW INSTRUCTION')


def sanitize_filename(filename: str, max_length: int = 255) -> str:
    """
    Base name of an upload without control characters or leading dots.

    Returns "unknown" when nothing usable is left.
    """
    if not filename:
        return "unknown"

    filename = re.split(r'[\\/]', filename)[-1]
    filename = _CONTROL_CHARS.sub('', filename).strip('. ')
    return filename[:max_length] or "unknown"


def sanitize_for_logging(value: str, max_length: int = 500) -> str:
    """Single-line, truncated form of a value for log messages."""
    if not value:
        return ""

    value = _CONTROL_CHARS.sub('', _LINE_BREAKS.sub(' ', value))
    if len(value) > max_length:
        value = value[:max_length] + "..."
    return value


def sanitize_for_prompt(text: str, max_length: int = 100) -> str:
    """
    Sanitize dataset-derived text before it is placed in a model prompt.

    Strips non-printable characters and line breaks, truncates, and
    brackets instruction-like markers so they read as data.
    """
    if not text:
        return ""

    sanitized = ''.join(ch for ch in str(text) if ch.isprintable() and ch not in '\n\r\t')
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."

    for marker in PROMPT_MARKERS:
        sanitized = sanitized.replace(marker, f'[{marker}]')
    return sanitized


def validate_column_name(name: str) -> bool:
    """
    True when a header field is safe to use as a column key.

    Tabs and line breaks are tolerated; other control characters, path
    traversal and reserved device names are not.
    """
    if not name or len(name) > 1000:
        return False

    dangerous_patterns = [
        r'\.\.',
        r'[\x00-\x08\x0b\x0c\x0e-\x1f]',
        r'^(CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])$',
    ]
    return not any(re.search(p, name, re.IGNORECASE) for p in dangerous_patterns)
