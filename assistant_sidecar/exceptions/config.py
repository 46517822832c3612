#!/usr/bin/env python3
"""
Configuration Exception Definitions

All configuration-related exceptions inherit from SidecarBaseError.
"""

from .base import SidecarBaseError


class ConfigError(SidecarBaseError):
    """Raised when settings fail validation."""

    def __init__(self, message, field_name=None, invalid_value=None):
        super().__init__(message)
        self.field_name = field_name
        self.invalid_value = invalid_value
