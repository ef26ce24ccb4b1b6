"""
数据模型定义
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

ALERT_STATUS_FIRING = "firing"
ALERT_STATUS_RESOLVED = "resolved"

# ServiceNow incident state：6 = Resolved
INCIDENT_STATE_RESOLVED = "6"


@dataclass(frozen=True)
class Alert:
    """Alertmanager 单条告警（接收后不可变）"""
    status: str
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    generator_url: str = ""
    fingerprint: str = ""

    @property
    def alertname(self) -> str:
        return self.labels.get("alertname", "")


@dataclass
class AlertBatch:
    """一次 Webhook 请求携带的告警批次（不持久化）"""
    status: str
    receiver: str
    alerts: List[Alert] = field(default_factory=list)
    external_url: str = ""
    version: str = ""
    group_key: str = ""
    group_labels: Dict[str, str] = field(default_factory=dict)
    common_labels: Dict[str, str] = field(default_factory=dict)
    common_annotations: Dict[str, str] = field(default_factory=dict)


@dataclass
class Incident:
    """创建 ServiceNow incident 的请求体"""
    short_description: str
    description: str
    impact: str
    urgency: str
    category: str
    subcategory: str
    correlation_id: str
    assignment_group: str = ""  # 可选，为空时不发送
    caller_id: str = ""  # 可选，为空时不发送

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "short_description": self.short_description,
            "description": self.description,
            "impact": self.impact,
            "urgency": self.urgency,
            "category": self.category,
            "subcategory": self.subcategory,
            "correlation_id": self.correlation_id,
        }
        if self.assignment_group:
            payload["assignment_group"] = self.assignment_group
        if self.caller_id:
            payload["caller_id"] = self.caller_id
        return payload


@dataclass
class IncidentRecord:
    """ServiceNow 中已存在的 incident（仅在单次请求内持有，不缓存）"""
    sys_id: str
    number: str
    state: str = ""
    correlation_id: str = ""
    short_description: str = ""

    @classmethod
    def from_result(cls, result: Dict[str, Any]) -> "IncidentRecord":
        return cls(
            sys_id=str(result.get("sys_id") or ""),
            number=str(result.get("number") or ""),
            state=str(result.get("state") or ""),
            correlation_id=str(result.get("correlation_id") or ""),
            short_description=str(result.get("short_description") or ""),
        )


@dataclass
class CreateIncidentResult:
    """创建 incident 的结果"""
    sys_id: str
    number: str


@dataclass
class BatchResult:
    """一个批次的处理结果（仅用于日志，不回传给 Alertmanager）"""
    total: int = 0
    failed: int = 0
    results: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class RetrySettings:
    """重试策略配置"""
    max_attempts: int = 3
    base_delay: float = 1.0  # 秒
    max_delay: float = 10.0  # 秒


@dataclass
class ServiceNowSettings:
    """ServiceNow 连接与 incident 字段默认值"""
    base_url: str
    username: str
    password: str
    endpoint_path: str = "/api/now/table/incident"
    category: str = "software"
    subcategory: str = "openshift"
    assignment_group: str = ""
    caller_id: str = ""
    root_cause: str = "Environmental"
    urgency: str = "3"
    impact: str = "3"
    timeout: float = 30.0  # 单次 HTTP 调用超时（秒）
    retry: RetrySettings = field(default_factory=RetrySettings)


@dataclass
class LabelSettings:
    """从告警 labels 中解析集群/环境所用的 key"""
    cluster_key: str = "cluster"
    environment_key: str = "environment"


@dataclass
class ServerSettings:
    """HTTP 服务配置"""
    host: str = "0.0.0.0"
    port: int = 8080
    request_timeout: float = 30.0  # 单个 Webhook 请求的处理上限（秒）
    shutdown_timeout: float = 30.0  # 优雅关闭时等待在途请求的时间（秒）


@dataclass
class LoggingSettings:
    """日志配置（字段与 setup_logging 参数一一对应）"""
    log_dir: str = "logs"
    log_file: str = "alert2snow.log"
    level: str = "INFO"
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5


@dataclass
class Settings:
    """应用完整配置"""
    servicenow: ServiceNowSettings
    labels: LabelSettings = field(default_factory=LabelSettings)
    server: ServerSettings = field(default_factory=ServerSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
