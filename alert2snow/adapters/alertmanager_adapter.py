"""
Prometheus Alertmanager Webhook 适配器

将 Alertmanager 的 webhook payload 转换为 AlertBatch。

Alertmanager 格式示例:
{
    "version": "4",
    "groupKey": "{}:{alertname=\"HighCPU\"}",
    "status": "firing",
    "receiver": "servicenow",
    "groupLabels": {...},
    "commonLabels": {...},
    "commonAnnotations": {...},
    "externalURL": "http://alertmanager:9093",
    "alerts": [
        {
            "status": "firing",
            "labels": {...},
            "annotations": {...},
            "startsAt": "2024-01-01T00:00:00Z",
            "endsAt": "0001-01-01T00:00:00Z",
            "generatorURL": "http://prometheus:9090/graph?g0.expr=...",
            "fingerprint": "c3b6f1a2d4e5f678"
        }
    ]
}
"""
from typing import Any, Dict

from ..core.exceptions import PayloadError
from ..core.logging_config import get_logger
from ..core.models import Alert, AlertBatch
from ..core.utils import ZERO_TIME, parse_timestamp

logger = get_logger()


def detect(payload: Any) -> bool:
    """是否为 Alertmanager 批量格式（顶层为对象且 alerts 为列表或 null）"""
    if not isinstance(payload, dict):
        return False
    # alerts 为 null 视为空批次
    alerts = payload.get("alerts")
    return alerts is None or isinstance(alerts, list)


def _string_map(value: Any, field_name: str) -> Dict[str, str]:
    """labels/annotations 统一转成 str -> str"""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise PayloadError(f"{field_name} 必须是对象")
    return {str(k): "" if v is None else str(v) for k, v in value.items()}


def _optional_str(value: Any) -> str:
    return "" if value is None else str(value)


def _parse_time(value: Any, field_name: str):
    if value is None:
        return None
    if not isinstance(value, str):
        raise PayloadError(f"{field_name} 必须是字符串")
    try:
        return parse_timestamp(value)
    except ValueError as e:
        raise PayloadError(f"{field_name} 时间格式错误: {value}") from e


def _parse_alert(raw: Any, index: int) -> Alert:
    if not isinstance(raw, dict):
        raise PayloadError(f"alerts[{index}] 必须是对象")
    ends_at = _parse_time(raw.get("endsAt"), f"alerts[{index}].endsAt")
    # 零值 endsAt 表示告警尚未结束
    if ends_at == ZERO_TIME:
        ends_at = None
    return Alert(
        status=_optional_str(raw.get("status")),
        labels=_string_map(raw.get("labels"), f"alerts[{index}].labels"),
        annotations=_string_map(raw.get("annotations"), f"alerts[{index}].annotations"),
        starts_at=_parse_time(raw.get("startsAt"), f"alerts[{index}].startsAt"),
        ends_at=ends_at,
        generator_url=_optional_str(raw.get("generatorURL")),
        fingerprint=_optional_str(raw.get("fingerprint")),
    )


def parse_batch(payload: Any) -> AlertBatch:
    """
    解析 Alertmanager webhook payload

    Raises:
        PayloadError: payload 结构不符合 Alertmanager 格式
    """
    if not isinstance(payload, dict):
        raise PayloadError("payload 必须是 JSON 对象")
    if not detect(payload):
        raise PayloadError("alerts 字段必须是列表")

    raw_alerts = payload.get("alerts") or []
    alerts = [_parse_alert(raw, i) for i, raw in enumerate(raw_alerts)]
    logger.debug(f"Alertmanager 收到 {len(alerts)} 条告警 (receiver: {payload.get('receiver')})")

    return AlertBatch(
        status=_optional_str(payload.get("status")),
        receiver=_optional_str(payload.get("receiver")),
        alerts=alerts,
        external_url=_optional_str(payload.get("externalURL")),
        version=_optional_str(payload.get("version")),
        group_key=_optional_str(payload.get("groupKey")),
        group_labels=_string_map(payload.get("groupLabels"), "groupLabels"),
        common_labels=_string_map(payload.get("commonLabels"), "commonLabels"),
        common_annotations=_string_map(payload.get("commonAnnotations"), "commonAnnotations"),
    )
