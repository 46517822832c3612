#!/usr/bin/env python3
"""
SensitiveStr - Wrapper for secrets that masks itself in logs, exceptions, and repr.
Prevents accidental leakage of API keys in the sidecar's request logs.
"""

from typing import Optional


class SensitiveStr:
    """
    A string wrapper that masks its value in all string representations.
    """

    def __init__(self, value: Optional[str]):
        self._value = value

    def __str__(self) -> str:
        return self.mask_for_display()

    def __repr__(self) -> str:
        if self._value is None:
            return "SensitiveStr(None)"
        return f"SensitiveStr('{self.mask_for_display()}')"

    def __bool__(self) -> bool:
        return bool(self._value)

    def __eq__(self, other) -> bool:
        if isinstance(other, SensitiveStr):
            return self._value == other._value
        return self._value == other

    def __hash__(self) -> int:
        return hash(self._value)

    def mask_for_display(self, show_chars: int = 3) -> str:
        """Masked form for log lines: the first few characters, then ``***``."""
        if not self._value:
            return "none"
        return f"{self._value[:show_chars]}***"
