"""
ServiceNow Table API 客户端

- 使用 HTTP 连接池复用连接（requests.Session + HTTPAdapter）
- 重试由 with_retry 统一控制，连接池本身不做重试，避免重试次数叠加
- 所有请求使用 Basic 认证，Content-Type / Accept 均为 application/json
"""
import json
from typing import Any, Callable, Dict, Optional, TypeVar

import requests
from requests.adapters import HTTPAdapter

from ..core.context import RequestContext
from ..core.exceptions import InvalidResponseError, ServiceNowAPIError
from ..core.logging_config import get_logger
from ..core.metrics import Metrics
from ..core.models import (
    INCIDENT_STATE_RESOLVED,
    CreateIncidentResult,
    Incident,
    IncidentRecord,
    ServiceNowSettings,
)
from ..core.utils import format_restored_date
from .retry import with_retry

logger = get_logger()

T = TypeVar("T")

CLOSE_CODE = "Solved (Permanently)"
CLOSE_NOTES = "Alert resolved - condition cleared automatically"

# 日志中响应体最多保留的字符数
_MAX_BODY_LOG = 500


def build_session(settings: ServiceNowSettings) -> requests.Session:
    """创建带连接池和认证信息的会话"""
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=10,  # 连接池大小
        pool_maxsize=20,     # 最大连接数
        max_retries=0,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.auth = (settings.username, settings.password)
    session.headers.update({
        "Content-Type": "application/json",
        "Accept": "application/json",
    })
    return session


class ServiceNowClient:
    """ServiceNow incident 客户端"""

    def __init__(
        self,
        settings: ServiceNowSettings,
        session: Optional[requests.Session] = None,
        metrics: Optional[Metrics] = None,
    ):
        self.settings = settings
        self.endpoint = settings.base_url.rstrip("/") + settings.endpoint_path
        self.session = session if session is not None else build_session(settings)
        self.metrics = metrics

    def close(self) -> None:
        self.session.close()

    def create_incident(self, ctx: RequestContext, incident: Incident) -> CreateIncidentResult:
        """创建 incident，返回 sys_id 与编号"""
        body = json.dumps(incident.to_payload())
        logger.debug(
            f"创建 ServiceNow incident: correlation_id={incident.correlation_id}, "
            f"short_description={incident.short_description}"
        )

        def attempt() -> CreateIncidentResult:
            response = self._request(ctx, "POST", self.endpoint, data=body)
            result = self._result(response)
            if not isinstance(result, dict):
                raise InvalidResponseError("ServiceNow 创建响应中 result 不是对象", response.text)
            return CreateIncidentResult(
                sys_id=str(result.get("sys_id") or ""),
                number=str(result.get("number") or ""),
            )

        return self._call(ctx, "create", attempt)

    def find_incident_by_correlation_id(
        self, ctx: RequestContext, correlation_id: str
    ) -> Optional[IncidentRecord]:
        """按 correlation_id 查找 incident，找不到返回 None（不视为错误）"""
        params = {
            "sysparm_query": f"correlation_id={correlation_id}",
            "sysparm_limit": 1,
        }
        logger.debug(f"按 correlation_id 查找 ServiceNow incident: {correlation_id}")

        def attempt() -> Optional[IncidentRecord]:
            response = self._request(ctx, "GET", self.endpoint, params=params)
            result = self._result(response)
            if not isinstance(result, list):
                raise InvalidResponseError("ServiceNow 查询响应中 result 不是列表", response.text)
            if not result:
                return None
            if not isinstance(result[0], dict):
                raise InvalidResponseError("ServiceNow 查询响应中的记录不是对象", response.text)
            return IncidentRecord.from_result(result[0])

        return self._call(ctx, "find", attempt)

    def resolve_incident(self, ctx: RequestContext, sys_id: str) -> None:
        """将 incident 更新为 Resolved"""
        payload = {
            "state": INCIDENT_STATE_RESOLVED,
            "close_code": CLOSE_CODE,
            "close_notes": CLOSE_NOTES,
            "u_restored_date": format_restored_date(),
        }
        if self.settings.root_cause:
            payload["u_root_cause"] = self.settings.root_cause
        body = json.dumps(payload)
        url = f"{self.endpoint}/{sys_id}"
        logger.debug(f"关闭 ServiceNow incident: sys_id={sys_id}")

        def attempt() -> None:
            self._request(ctx, "PATCH", url, data=body)

        self._call(ctx, "resolve", attempt)

    def _call(self, ctx: RequestContext, operation: str, attempt: Callable[[], T]) -> T:
        """执行带重试的操作并记录指标"""
        try:
            result = with_retry(ctx, self.settings.retry, attempt, operation=operation)
        except Exception:
            if self.metrics is not None:
                self.metrics.record_request(operation, success=False)
            raise
        if self.metrics is not None:
            self.metrics.record_request(operation, success=True)
        return result

    def _timeout(self, ctx: RequestContext) -> float:
        """单次请求超时：取配置超时与上下文剩余时间的较小值"""
        remaining = ctx.remaining()
        if remaining is None:
            return self.settings.timeout
        return max(0.001, min(self.settings.timeout, remaining))

    def _request(self, ctx: RequestContext, method: str, url: str, **kwargs) -> requests.Response:
        response = self.session.request(method, url, timeout=self._timeout(ctx), **kwargs)
        self._check_response(response)
        return response

    def _check_response(self, response: requests.Response) -> None:
        """非 2xx 统一转换为 ServiceNowAPIError"""
        if 200 <= response.status_code < 300:
            return
        body = (response.text or "")[:_MAX_BODY_LOG]
        error = ServiceNowAPIError(response.status_code, body)
        if error.is_client_error:
            # 4xx 多为认证、权限或字段配置问题，不打印堆栈
            logger.warning(f"ServiceNow API 返回 {response.status_code}（请检查凭据与字段配置）: {body}")
        else:
            logger.error(f"ServiceNow API 返回 {response.status_code}: {body}")
        raise error

    @staticmethod
    def _result(response: requests.Response) -> Any:
        try:
            data: Dict[str, Any] = response.json()
        except ValueError as e:
            raise InvalidResponseError(f"ServiceNow 响应不是合法 JSON: {e}", response.text) from e
        if not isinstance(data, dict) or "result" not in data:
            raise InvalidResponseError("ServiceNow 响应缺少 result 字段", response.text)
        return data["result"]
