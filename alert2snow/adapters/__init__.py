"""
入站数据适配器
"""
from .alertmanager_adapter import detect, parse_batch

__all__ = [
    "detect",
    "parse_batch",
]
