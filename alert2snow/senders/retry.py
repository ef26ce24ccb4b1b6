"""
重试策略

- 4xx：调用方错误（payload 错误、认证失败、更新目标不存在），立即返回不重试
- 5xx、连接失败/超时/DNS 失败、2xx 但响应体不可用：按指数退避重试
- 退避等待可被请求上下文取消，取消后立即返回取消异常
"""
from typing import Callable, Optional, TypeVar

import requests

from ..core.context import RequestContext
from ..core.exceptions import InvalidResponseError, ServiceNowAPIError
from ..core.logging_config import get_logger
from ..core.models import RetrySettings

logger = get_logger()

T = TypeVar("T")

# 可能被重试的异常类型，其它异常视为代码错误直接抛出
RETRY_CANDIDATES = (requests.exceptions.RequestException, ServiceNowAPIError, InvalidResponseError)


def is_retryable(error: Exception) -> bool:
    """判断异常是否应重试"""
    if isinstance(error, ServiceNowAPIError):
        return not error.is_client_error
    return isinstance(error, RETRY_CANDIDATES)


def calculate_backoff(attempt: int, base_delay: float, max_delay: float) -> float:
    """第 attempt 次（从 0 开始）失败后的等待时间：min(base * 2^attempt, max)"""
    return min(base_delay * (2 ** attempt), max_delay)


def with_retry(
    ctx: RequestContext,
    settings: RetrySettings,
    fn: Callable[[], T],
    operation: str = "",
) -> T:
    """
    带指数退避的重试执行

    Args:
        ctx: 请求上下文（取消/超时）
        settings: 重试配置
        fn: 单次尝试
        operation: 操作名，仅用于日志

    Returns:
        fn 的返回值

    Raises:
        ContextCancelled: 上下文在尝试前或退避等待中被取消/超时
        ServiceNowAPIError / RequestException / InvalidResponseError: 最后一次失败原样抛出
    """
    max_attempts = max(1, settings.max_attempts)
    last_error: Optional[Exception] = None

    for attempt in range(max_attempts):
        ctx_error = ctx.error()
        if ctx_error is not None:
            raise ctx_error

        try:
            return fn()
        except RETRY_CANDIDATES as e:
            if not is_retryable(e):
                raise
            last_error = e

        if attempt < max_attempts - 1:
            delay = calculate_backoff(attempt, settings.base_delay, settings.max_delay)
            logger.warning(
                f"ServiceNow {operation} 第 {attempt + 1}/{max_attempts} 次尝试失败，"
                f"{delay:.1f}s 后重试: {last_error}"
            )
            ctx_error = ctx.wait(delay)
            if ctx_error is not None:
                raise ctx_error from last_error

    raise last_error
