"""
Prometheus 指标

指标挂在独立的 CollectorRegistry 上，由 app 在启动时创建并注入，不使用全局默认 registry。
"""
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, generate_latest


class Metrics:
    """进程级指标集合"""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self.alerts_received = Counter(
            "alert2snow_alerts_received",
            "Total number of alerts received from Alertmanager",
            ["status"],
            registry=self.registry,
        )
        self.alerts_failed = Counter(
            "alert2snow_alerts_failed",
            "Total number of alerts that failed to process",
            registry=self.registry,
        )
        self.servicenow_requests = Counter(
            "alert2snow_servicenow_requests",
            "Total number of requests to ServiceNow",
            ["operation", "status"],
            registry=self.registry,
        )

    def record_alert(self, status: str) -> None:
        self.alerts_received.labels(status=status or "unknown").inc()

    def record_failure(self) -> None:
        self.alerts_failed.inc()

    def record_request(self, operation: str, success: bool) -> None:
        self.servicenow_requests.labels(
            operation=operation, status="success" if success else "error"
        ).inc()

    def render(self) -> bytes:
        return generate_latest(self.registry)
