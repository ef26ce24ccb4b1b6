"""
请求上下文

为一次 Webhook 请求提供取消信号与截止时间，传递给 ServiceNow 调用和重试退避等待。
"""
import threading
import time
from typing import Optional

from .exceptions import ContextCancelled, ContextDeadlineExceeded


class RequestContext:
    """可取消、可超时的请求上下文（线程安全）"""

    def __init__(self, timeout: Optional[float] = None):
        self._cancelled = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """距截止时间的剩余秒数；无截止时间返回 None"""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def error(self) -> Optional[ContextCancelled]:
        """上下文已结束时返回对应异常，否则返回 None"""
        if self._cancelled.is_set():
            return ContextCancelled("context canceled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return ContextDeadlineExceeded("context deadline exceeded")
        return None

    def wait(self, delay: float) -> Optional[ContextCancelled]:
        """
        等待 delay 秒，期间一旦取消或超时立即返回

        Returns:
            None 表示正常等待结束，否则为取消/超时异常
        """
        timeout = delay
        remaining = self.remaining()
        if remaining is not None:
            timeout = min(delay, remaining)
        self._cancelled.wait(timeout)
        return self.error()
