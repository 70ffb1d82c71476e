"""Health and network observations consumed by the orchestrator."""

from loadwatch.monitoring.health import (
    HealthCheck,
    HealthCheckResult,
    HealthMonitor,
    HealthProbe,
    HealthStatus,
    SystemHealth,
    coerce_health_status,
)
from loadwatch.monitoring.network import (
    EnvironmentNetworkReader,
    NetworkClass,
    NetworkCondition,
    NetworkConditionReader,
    StaticNetworkReader,
    UnavailableNetworkReader,
    classify_connection,
    read_network_condition,
)

__all__ = [
    "EnvironmentNetworkReader",
    "HealthCheck",
    "HealthCheckResult",
    "HealthMonitor",
    "HealthProbe",
    "HealthStatus",
    "NetworkClass",
    "NetworkCondition",
    "NetworkConditionReader",
    "StaticNetworkReader",
    "SystemHealth",
    "UnavailableNetworkReader",
    "classify_connection",
    "coerce_health_status",
    "read_network_condition",
]
