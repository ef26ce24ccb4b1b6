"""
告警 -> ServiceNow incident 转换

集群名解析顺序：
1. 配置的集群 label（默认 cluster）
2. generatorURL 主机名中的 OpenShift 路由格式：<app>.apps.<cluster>.<domain>
3. 都没有时为空字符串：short_description 中显示为 unknown-cluster，
   description 的 Cluster 行保持空白（下游可能依赖这一差异，不要统一）
"""
from typing import Optional
from urllib.parse import quote, urlparse

from ..core.models import Alert, Incident, LabelSettings, ServiceNowSettings
from ..core.utils import format_utc
from ..correlation.fingerprint import generate_correlation_id
from ..templates.template_renderer import render

UNKNOWN_CLUSTER = "unknown-cluster"
DESCRIPTION_TEMPLATE = "incident_description.txt.j2"
CONSOLE_URL_TEMPLATE = (
    "https://console-openshift-console.apps.{cluster}.example.com/k8s/cluster/projects/{namespace}"
)

_APPS_MARKER = ".apps."


def _hostname(netloc: str) -> str:
    """从 netloc 中去掉 userinfo 和端口，保留主机名原始大小写（urlparse.hostname 会转小写）"""
    host = netloc.rpartition("@")[2]
    if host.startswith("["):
        return host[1:].split("]", 1)[0]
    return host.split(":", 1)[0]


def extract_cluster_from_url(raw_url: str) -> str:
    """
    从 OpenShift 风格 URL 中提取集群名

    https://console-openshift-console.apps.os-lb3az1d1.ssnc-corp.cloud/... -> os-lb3az1d1
    不匹配时返回空字符串。
    """
    if not raw_url:
        return ""
    try:
        netloc = urlparse(raw_url).netloc
    except ValueError:
        return ""
    host = _hostname(netloc)

    idx = host.find(_APPS_MARKER)
    if idx == -1:
        return ""
    after_apps = host[idx + len(_APPS_MARKER):]
    # 后面没有点时，剩余部分整体作为集群名
    return after_apps.split(".", 1)[0]


def build_short_description(cluster: str, alertname: str, namespace: str) -> str:
    cluster = cluster or UNKNOWN_CLUSTER
    if namespace:
        return f"[{cluster}] {alertname} in namespace: {namespace}"
    return f"[{cluster}] {alertname}"


def build_console_url(cluster: str, namespace: str) -> str:
    return CONSOLE_URL_TEMPLATE.format(
        cluster=quote(cluster, safe=""),
        namespace=quote(namespace, safe=""),
    )


class IncidentTransformer:
    """将 Alertmanager 告警转换为 ServiceNow incident"""

    def __init__(self, servicenow: ServiceNowSettings, labels: Optional[LabelSettings] = None):
        self.servicenow = servicenow
        self.labels = labels or LabelSettings()

    def extract_cluster_name(self, alert: Alert) -> str:
        cluster = alert.labels.get(self.labels.cluster_key, "")
        if cluster:
            return cluster
        return extract_cluster_from_url(alert.generator_url)

    def transform(self, alert: Alert, external_url: str = "") -> Incident:
        """
        转换单条告警（不会失败，缺失字段降级为空或省略对应段落）

        Args:
            alert: 告警
            external_url: 批次的 Alertmanager externalURL（当前未写入 incident）
        """
        labels = alert.labels
        alertname = alert.alertname
        cluster = self.extract_cluster_name(alert)
        namespace = labels.get("namespace", "")

        return Incident(
            short_description=build_short_description(cluster, alertname, namespace),
            description=self._build_description(alert, cluster),
            impact=self.servicenow.impact,
            urgency=self.servicenow.urgency,
            category=self.servicenow.category,
            subcategory=self.servicenow.subcategory,
            assignment_group=self.servicenow.assignment_group,
            caller_id=self.servicenow.caller_id,
            correlation_id=generate_correlation_id(alertname, labels),
        )

    def _build_description(self, alert: Alert, cluster: str) -> str:
        labels = alert.labels
        namespace = labels.get("namespace", "")
        ctx = {
            "alertname": alert.alertname,
            "cluster": cluster,
            "environment": labels.get(self.labels.environment_key, ""),
            "severity": labels.get("severity", ""),
            "starts_at": format_utc(alert.starts_at),
            "summary": alert.annotations.get("summary", ""),
            "description": alert.annotations.get("description", ""),
            "namespace": namespace,
            "pod": labels.get("pod", ""),
            "container": labels.get("container", ""),
            "console_url": build_console_url(cluster, namespace) if cluster and namespace else "",
            "generator_url": alert.generator_url,
            "labels": sorted(labels.items()),
        }
        return render(DESCRIPTION_TEMPLATE, ctx)
