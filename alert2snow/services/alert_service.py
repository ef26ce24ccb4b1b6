"""
告警处理服务层

将业务逻辑从 app.py 中分离出来，使 app.py 只负责 HTTP 路由和请求处理。

处理规则：
- firing：生成 incident 并创建
- resolved：按 correlation_id 查找 incident，存在则关闭；不存在则忽略（不算失败）
- 其它状态：记录警告并跳过
- 单条告警失败不影响同批次其它告警；批次整体始终返回成功，
  避免 Alertmanager 重发整批导致已成功的告警重复创建 incident
"""
from typing import Optional, Protocol

from requests.exceptions import RequestException

from ..core.context import RequestContext
from ..core.exceptions import Alert2SnowError, ContextCancelled, ServiceNowAPIError
from ..core.logging_config import get_logger
from ..core.metrics import Metrics
from ..core.models import (
    ALERT_STATUS_FIRING,
    ALERT_STATUS_RESOLVED,
    Alert,
    AlertBatch,
    BatchResult,
    CreateIncidentResult,
    Incident,
    IncidentRecord,
)
from ..correlation.fingerprint import generate_correlation_id
from .incident_transformer import IncidentTransformer

logger = get_logger()


class IncidentClient(Protocol):
    """incident 系统客户端需要提供的能力（ServiceNowClient 或测试替身）"""

    def create_incident(self, ctx: RequestContext, incident: Incident) -> CreateIncidentResult:
        ...

    def find_incident_by_correlation_id(
        self, ctx: RequestContext, correlation_id: str
    ) -> Optional[IncidentRecord]:
        ...

    def resolve_incident(self, ctx: RequestContext, sys_id: str) -> None:
        ...


class AlertService:
    """告警处理服务"""

    def __init__(
        self,
        client: IncidentClient,
        transformer: IncidentTransformer,
        metrics: Optional[Metrics] = None,
    ):
        self.client = client
        self.transformer = transformer
        self.metrics = metrics

    def process_batch(self, ctx: RequestContext, batch: AlertBatch) -> BatchResult:
        """
        按顺序处理批次内所有告警

        Args:
            ctx: 请求上下文
            batch: 告警批次

        Returns:
            BatchResult: 处理汇总（仅用于日志）
        """
        summary = BatchResult(total=len(batch.alerts))
        for alert in batch.alerts:
            result = self._process_single_alert(ctx, alert, batch.external_url)
            summary.results.append(result)
            if "error" in result:
                summary.failed += 1

        if summary.failed:
            logger.warning(f"部分告警处理失败: 共 {summary.total} 条，失败 {summary.failed} 条")
        return summary

    def _process_single_alert(self, ctx: RequestContext, alert: Alert, external_url: str) -> dict:
        """处理单条告警，失败时记录并返回错误结果，不向上抛出"""
        alertname = alert.alertname
        correlation_id = generate_correlation_id(alertname, alert.labels)
        if self.metrics is not None:
            self.metrics.record_alert(alert.status)

        try:
            if alert.status == ALERT_STATUS_FIRING:
                return self._handle_firing(ctx, alert, external_url, correlation_id)
            if alert.status == ALERT_STATUS_RESOLVED:
                return self._handle_resolved(ctx, alertname, correlation_id)
        except (Alert2SnowError, RequestException) as e:
            self._log_failure(alert, correlation_id, e)
            if self.metrics is not None:
                self.metrics.record_failure()
            return {
                "alert": alertname,
                "alert_status": alert.status,
                "correlation_id": correlation_id,
                "error": str(e),
            }
        except Exception as e:
            # 未预期错误同样只影响当前告警，避免整批返回 500 导致 Alertmanager 重发
            logger.critical(
                f"告警 {alertname} (correlation_id={correlation_id}) 处理发生未预期错误: {e}",
                exc_info=True,
            )
            if self.metrics is not None:
                self.metrics.record_failure()
            return {
                "alert": alertname,
                "alert_status": alert.status,
                "correlation_id": correlation_id,
                "error": str(e),
            }

        logger.warning(f"告警 {alertname} 状态未知，跳过: {alert.status!r}")
        return {
            "alert": alertname,
            "alert_status": alert.status,
            "correlation_id": correlation_id,
            "skipped": "未知告警状态",
        }

    def _handle_firing(
        self, ctx: RequestContext, alert: Alert, external_url: str, correlation_id: str
    ) -> dict:
        alertname = alert.alertname
        logger.info(f"处理 firing 告警 {alertname} (correlation_id={correlation_id})")

        incident = self.transformer.transform(alert, external_url)
        created = self.client.create_incident(ctx, incident)

        logger.info(
            f"告警 {alertname} 已创建 ServiceNow incident {created.number} "
            f"(sys_id={created.sys_id}, correlation_id={correlation_id})"
        )
        return {
            "alert": alertname,
            "alert_status": alert.status,
            "correlation_id": correlation_id,
            "status": "created",
            "number": created.number,
            "sys_id": created.sys_id,
        }

    def _handle_resolved(self, ctx: RequestContext, alertname: str, correlation_id: str) -> dict:
        logger.info(f"处理 resolved 告警 {alertname} (correlation_id={correlation_id})")

        existing = self.client.find_incident_by_correlation_id(ctx, correlation_id)
        if existing is None:
            # firing 可能从未成功创建（例如之前的瞬时故障），或仍在其它副本处理中
            logger.warning(
                f"告警 {alertname} 已恢复，但未找到对应 incident (correlation_id={correlation_id})，忽略"
            )
            return {
                "alert": alertname,
                "alert_status": ALERT_STATUS_RESOLVED,
                "correlation_id": correlation_id,
                "skipped": "未找到对应 incident",
            }

        self.client.resolve_incident(ctx, existing.sys_id)
        logger.info(
            f"告警 {alertname} 已关闭 ServiceNow incident {existing.number} "
            f"(sys_id={existing.sys_id}, correlation_id={correlation_id})"
        )
        return {
            "alert": alertname,
            "alert_status": ALERT_STATUS_RESOLVED,
            "correlation_id": correlation_id,
            "status": "resolved",
            "number": existing.number,
            "sys_id": existing.sys_id,
        }

    @staticmethod
    def _log_failure(alert: Alert, correlation_id: str, error: Exception) -> None:
        prefix = f"告警 {alert.alertname} ({alert.status}, correlation_id={correlation_id}) 处理失败"
        if isinstance(error, ContextCancelled):
            logger.error(f"{prefix}: 请求已取消或超时 ({error})")
        elif isinstance(error, ServiceNowAPIError) and error.is_client_error:
            logger.warning(f"{prefix}: {error}")
        else:
            logger.error(f"{prefix}: {error}", exc_info=True)
