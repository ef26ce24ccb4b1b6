"""
alert2snow：Alertmanager 告警 -> ServiceNow incident 桥接服务
"""
from .core import (
    Metrics,
    RequestContext,
    Settings,
    build_settings,
    get_logger,
    load_config,
    setup_logging,
)
from .adapters import parse_batch
from .correlation import generate_correlation_id
from .senders import ServiceNowClient, with_retry
from .services import AlertService, IncidentClient, IncidentTransformer
from .templates import render

__version__ = "1.0.0"

__all__ = [
    "Metrics",
    "RequestContext",
    "Settings",
    "build_settings",
    "get_logger",
    "load_config",
    "setup_logging",
    "parse_batch",
    "generate_correlation_id",
    "ServiceNowClient",
    "with_retry",
    "AlertService",
    "IncidentClient",
    "IncidentTransformer",
    "render",
]
