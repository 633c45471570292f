"""Compatibility flags that change how POSIX TZ strings are parsed.

The default parser is lenient: it accepts short abbreviations and fills
in customary transition rules when a daylight name is given without any.
Strict mode follows the POSIX grammar to the letter.
"""

from collections.abc import Generator
import contextlib
import contextvars

__all__ = [
    "enable_strict_posix",
    "is_strict_posix_enabled",
]

_strict_posix = contextvars.ContextVar("strict_posix", default=False)


@contextlib.contextmanager
def enable_strict_posix() -> Generator[None]:
    """Context manager to parse POSIX TZ strings in strict mode."""
    token = _strict_posix.set(True)
    try:
        yield
    finally:
        _strict_posix.reset(token)


def is_strict_posix_enabled() -> bool:
    """Check if strict POSIX parsing is enabled."""
    return _strict_posix.get()
