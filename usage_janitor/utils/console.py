"""Rich console that degrades gracefully on non UTF-8 terminals."""
import locale
import sys
from typing import Any

from rich.console import Console


# Symbols printed by the CLI and their ASCII stand-ins
ASCII_FALLBACKS = {
    '✓': '[OK]',
    '✗': '[FAIL]',
    '⚠': '[WARN]',
}

UTF8_ENCODINGS = ('utf-8', 'utf8', 'utf_8')


def terminal_encoding() -> str:
    encoding = getattr(sys.stdout, 'encoding', None)
    if encoding:
        return encoding.lower()
    try:
        return locale.getpreferredencoding().lower()
    except Exception:
        return 'ascii'


def is_utf8_capable() -> bool:
    return terminal_encoding() in UTF8_ENCODINGS


def to_ascii(text: str) -> str:
    """Replace known symbols with their ASCII equivalent."""
    for symbol, fallback in ASCII_FALLBACKS.items():
        text = text.replace(symbol, fallback)
    return text


class SafeConsole(Console):
    """Console that swaps symbols for ASCII when the terminal can't show them."""

    def __init__(self, *args, **kwargs):
        self._needs_sanitization = not is_utf8_capable()
        if self._needs_sanitization:
            kwargs.setdefault('legacy_windows', True)
        super().__init__(*args, **kwargs)

    def print(self, *objects: Any, **kwargs) -> None:
        if self._needs_sanitization:
            objects = tuple(to_ascii(obj) if isinstance(obj, str) else obj for obj in objects)
        super().print(*objects, **kwargs)
