"""
告警关联模块
"""
from .fingerprint import generate_correlation_id

__all__ = [
    "generate_correlation_id",
]
