"""
Service layer: configuration, orchestration and the HTTP surface
"""

from .config import AppConfig, Environment, PoolSettings, load_config
from .pool_service import PoolService, ServiceResult

__all__ = [
    "AppConfig",
    "Environment",
    "PoolSettings",
    "load_config",
    "PoolService",
    "ServiceResult",
]
