"""
.. include:: ../README.md
"""

__all__ = [
    "adjustment",
    "calendar",
    "compat",
    "duration",
    "exceptions",
    "posix",
    "rule",
    "timezone",
    "tzfile",
    "tzinfo",
]
