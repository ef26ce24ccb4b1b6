"""
业务服务层模块
"""
from .alert_service import AlertService, IncidentClient
from .incident_transformer import IncidentTransformer

__all__ = [
    "AlertService",
    "IncidentClient",
    "IncidentTransformer",
]
