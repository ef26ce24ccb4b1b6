"""
配置加载模块（只负责读配置，不初始化日志；日志由 app 在启动时显式初始化）

配置来源优先级：环境变量 > config.yaml > 代码默认值。
凭据建议只通过环境变量注入，不写入 config.yaml。
"""
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .models import (
    LabelSettings,
    LoggingSettings,
    RetrySettings,
    ServerSettings,
    ServiceNowSettings,
    Settings,
)

# (配置路径, 环境变量名)
_ENV_OVERRIDES = [
    (("servicenow", "base_url"), "SERVICENOW_BASE_URL"),
    (("servicenow", "endpoint_path"), "SERVICENOW_ENDPOINT_PATH"),
    (("servicenow", "username"), "SERVICENOW_USERNAME"),
    (("servicenow", "password"), "SERVICENOW_PASSWORD"),
    (("servicenow", "category"), "SERVICENOW_CATEGORY"),
    (("servicenow", "subcategory"), "SERVICENOW_SUBCATEGORY"),
    (("servicenow", "assignment_group"), "SERVICENOW_ASSIGNMENT_GROUP"),
    (("servicenow", "caller_id"), "SERVICENOW_CALLER_ID"),
    (("servicenow", "root_cause"), "SERVICENOW_ROOT_CAUSE"),
    (("servicenow", "urgency"), "SERVICENOW_URGENCY"),
    (("servicenow", "impact"), "SERVICENOW_IMPACT"),
    (("servicenow", "timeout_seconds"), "SERVICENOW_TIMEOUT_SECONDS"),
    (("servicenow", "retry", "max_attempts"), "SERVICENOW_RETRY_MAX_ATTEMPTS"),
    (("servicenow", "retry", "base_delay_seconds"), "SERVICENOW_RETRY_BASE_DELAY"),
    (("servicenow", "retry", "max_delay_seconds"), "SERVICENOW_RETRY_MAX_DELAY"),
    (("server", "host"), "HTTP_HOST"),
    (("server", "port"), "HTTP_PORT"),
    (("server", "request_timeout_seconds"), "REQUEST_TIMEOUT_SECONDS"),
    (("server", "shutdown_timeout_seconds"), "SHUTDOWN_TIMEOUT_SECONDS"),
    (("labels", "cluster_key"), "CLUSTER_LABEL_KEY"),
    (("labels", "environment_key"), "ENVIRONMENT_LABEL_KEY"),
    (("logging", "level"), "LOG_LEVEL"),
]

_REQUIRED = [
    ("base_url", "SERVICENOW_BASE_URL"),
    ("username", "SERVICENOW_USERNAME"),
    ("password", "SERVICENOW_PASSWORD"),
]


def _config_path(environ: Mapping[str, str]) -> Optional[Path]:
    """
    解析 config.yaml 路径：优先环境变量 CONFIG_FILE，否则为项目根目录下的 config.yaml

    显式指定的 CONFIG_FILE 不存在时报错；默认路径不存在时返回 None（仅使用环境变量）。
    """
    env_path = environ.get("CONFIG_FILE")
    if env_path:
        if not os.path.isfile(env_path):
            raise FileNotFoundError(f"配置文件不存在: {env_path}（来自环境变量 CONFIG_FILE）")
        return Path(env_path)
    # 项目根：当前文件 alert2snow/core/config.py -> 上两级目录
    root = Path(__file__).resolve().parent.parent.parent
    path = root / "config.yaml"
    return path if path.is_file() else None


def _apply_env_overrides(raw: Dict[str, Any], environ: Mapping[str, str]) -> None:
    """环境变量覆盖配置文件中的同名配置（空字符串视为未设置）"""
    for path, env_name in _ENV_OVERRIDES:
        value = environ.get(env_name)
        if not value:
            continue
        node = raw
        for key in path[:-1]:
            if not isinstance(node.get(key), dict):
                node[key] = {}
            node = node[key]
        node[path[-1]] = value


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"配置中 {name} 必须是字典")
    return section


def _positive_float(value: Any, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"配置项 {name} 必须是数字: {value!r}") from None
    if number <= 0:
        raise ValueError(f"配置项 {name} 必须大于 0: {value!r}")
    return number


def _positive_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"配置项 {name} 必须是整数: {value!r}") from None
    if number < 1:
        raise ValueError(f"配置项 {name} 必须大于等于 1: {value!r}")
    return number


def build_settings(raw: Dict[str, Any]) -> Settings:
    """
    由原始配置字典构建 Settings，并校验必填项与数值范围

    Raises:
        ValueError: 缺少必填项或数值非法
    """
    snow = _section(raw, "servicenow")
    missing = [env for key, env in _REQUIRED if not snow.get(key)]
    if missing:
        raise ValueError(f"缺少必要配置: {', '.join(missing)}")

    retry_raw = _section(snow, "retry")
    defaults = RetrySettings()
    retry = RetrySettings(
        max_attempts=_positive_int(
            retry_raw.get("max_attempts", defaults.max_attempts), "servicenow.retry.max_attempts"
        ),
        base_delay=_positive_float(
            retry_raw.get("base_delay_seconds", defaults.base_delay), "servicenow.retry.base_delay_seconds"
        ),
        max_delay=_positive_float(
            retry_raw.get("max_delay_seconds", defaults.max_delay), "servicenow.retry.max_delay_seconds"
        ),
    )

    snow_defaults = ServiceNowSettings(base_url="", username="", password="")
    servicenow = ServiceNowSettings(
        base_url=str(snow["base_url"]).rstrip("/"),
        username=str(snow["username"]),
        password=str(snow["password"]),
        endpoint_path=str(snow.get("endpoint_path") or snow_defaults.endpoint_path),
        category=str(snow.get("category") or snow_defaults.category),
        subcategory=str(snow.get("subcategory") or snow_defaults.subcategory),
        assignment_group=str(snow.get("assignment_group") or ""),
        caller_id=str(snow.get("caller_id") or ""),
        root_cause=str(snow.get("root_cause") or snow_defaults.root_cause),
        urgency=str(snow.get("urgency") or snow_defaults.urgency),
        impact=str(snow.get("impact") or snow_defaults.impact),
        timeout=_positive_float(snow.get("timeout_seconds", snow_defaults.timeout), "servicenow.timeout_seconds"),
        retry=retry,
    )

    labels_raw = _section(raw, "labels")
    labels = LabelSettings(
        cluster_key=str(labels_raw.get("cluster_key") or LabelSettings.cluster_key),
        environment_key=str(labels_raw.get("environment_key") or LabelSettings.environment_key),
    )

    server_raw = _section(raw, "server")
    server_defaults = ServerSettings()
    server = ServerSettings(
        host=str(server_raw.get("host") or server_defaults.host),
        port=_positive_int(server_raw.get("port", server_defaults.port), "server.port"),
        request_timeout=_positive_float(
            server_raw.get("request_timeout_seconds", server_defaults.request_timeout),
            "server.request_timeout_seconds",
        ),
        shutdown_timeout=_positive_float(
            server_raw.get("shutdown_timeout_seconds", server_defaults.shutdown_timeout),
            "server.shutdown_timeout_seconds",
        ),
    )

    logging_raw = _section(raw, "logging")
    logging_fields = asdict(LoggingSettings())
    logging_fields.update({k: v for k, v in logging_raw.items() if k in logging_fields})
    log_settings = LoggingSettings(**logging_fields)

    return Settings(servicenow=servicenow, labels=labels, server=server, logging=log_settings)


def load_config(environ: Optional[Mapping[str, str]] = None) -> Tuple[Dict, Settings]:
    """
    加载配置文件

    Args:
        environ: 环境变量映射，默认 os.environ（测试时可注入）

    Returns:
        Tuple[Dict, Settings]: (原始配置字典, 解析后的配置)
    """
    if environ is None:
        environ = os.environ
    path = _config_path(environ)
    raw: Dict[str, Any] = {}
    if path is not None:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"配置文件格式错误: {path}")
    _apply_env_overrides(raw, environ)
    return raw, build_settings(raw)
