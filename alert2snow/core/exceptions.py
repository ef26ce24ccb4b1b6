"""
异常定义模块

所有业务异常均继承 Alert2SnowError，便于批处理层按单条告警捕获失败。
"""
from typing import Optional


class Alert2SnowError(Exception):
    """alert2snow 异常基类"""


class PayloadError(Alert2SnowError, ValueError):
    """入站 Webhook 数据无法解析（返回 400）"""


class ServiceNowAPIError(Alert2SnowError):
    """ServiceNow 返回非 2xx 状态码"""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"ServiceNow API returned status {status_code}: {body}")

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= 500


class InvalidResponseError(Alert2SnowError):
    """ServiceNow 返回 2xx，但响应体无法使用"""

    def __init__(self, message: str, body: Optional[str] = None):
        self.body = body
        super().__init__(message)


class ContextCancelled(Alert2SnowError):
    """请求上下文已取消"""


class ContextDeadlineExceeded(ContextCancelled):
    """请求上下文已超时"""
