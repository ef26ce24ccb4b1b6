"""
核心功能模块
"""
from .config import load_config, build_settings
from .context import RequestContext
from .logging_config import setup_logging, get_logger
from .metrics import Metrics
from .models import Settings

__all__ = [
    "load_config",
    "build_settings",
    "RequestContext",
    "setup_logging",
    "get_logger",
    "Metrics",
    "Settings",
]
