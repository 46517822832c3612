from .logger import setup_logging, stringify_preview
from .sensitive_str import SensitiveStr

__all__ = ["setup_logging", "stringify_preview", "SensitiveStr"]
