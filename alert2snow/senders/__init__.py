"""
ServiceNow 发送模块
"""
from .retry import calculate_backoff, is_retryable, with_retry
from .servicenow_client import ServiceNowClient, build_session

__all__ = [
    "ServiceNowClient",
    "build_session",
    "calculate_backoff",
    "is_retryable",
    "with_retry",
]
