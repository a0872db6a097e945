import os
import logging
import sys
from typing import Optional, List, Dict, Any

import yaml

from models import MetricProfile


# =============================================================================
# Logging Configuration
# =============================================================================
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT: str = os.getenv(
    "LOG_FORMAT",
    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


def setup_logging():
    """Configure application-wide logging.

    Logs go to stderr; stdout is reserved for the recommendation table.
    """
    level = getattr(logging, LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)]
    )
    # Reduce noise from the AWS SDK
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "on")


# =============================================================================
# Cluster Selection
# =============================================================================
AWS_REGION: Optional[str] = os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION")
ECS_CLUSTER: Optional[str] = os.getenv("ECS_CLUSTER")
LAUNCH_TYPE: str = os.getenv("LAUNCH_TYPE", "EC2")

# =============================================================================
# Recommendation Settings
# =============================================================================
TARGET_UTILIZATION_PERCENT: float = float(os.getenv("TARGET_UTILIZATION_PERCENT", "80"))
METRIC_TYPE: str = os.getenv("METRIC_TYPE", "memory").lower()
# ECS allocates CPU units and MiB of memory in steps of 16
RESERVATION_GRANULARITY: int = int(os.getenv("RESERVATION_GRANULARITY", "16"))
DRY_RUN: bool = _env_bool("DRY_RUN", False)

# =============================================================================
# CloudWatch Query Window
# =============================================================================
METRIC_NAMESPACE: str = os.getenv("METRIC_NAMESPACE", "AWS/ECS")
LOOKBACK_HOURS: int = int(os.getenv("LOOKBACK_HOURS", "24"))
PERIOD_SECONDS: int = int(os.getenv("PERIOD_SECONDS", "3600"))
WINDOW_END_OFFSET_MINUTES: int = int(os.getenv("WINDOW_END_OFFSET_MINUTES", "1"))

# =============================================================================
# AWS API Behaviour
# =============================================================================
MAX_CONCURRENCY: int = int(os.getenv("MAX_CONCURRENCY", "8"))
LIST_SERVICES_PAGE_SIZE: int = int(os.getenv("LIST_SERVICES_PAGE_SIZE", "10"))
AWS_TIMEOUT_SECONDS: int = int(os.getenv("AWS_TIMEOUT_SECONDS", "30"))
AWS_MAX_ATTEMPTS: int = int(os.getenv("AWS_MAX_ATTEMPTS", "3"))

# Output directory for JSON reports
OUTPUT_DIR: str = os.getenv("OUTPUT_DIR", "output")


# =============================================================================
# Metric Profiles
# =============================================================================
METRIC_PROFILES: Dict[str, MetricProfile] = {
    "memory": MetricProfile(
        metric_type="memory",
        metric_name="MemoryUtilization",
        container_fields=("memory", "memoryReservation"),
        task_field="memory",
        unit_label="MiB",
    ),
    "cpu": MetricProfile(
        metric_type="cpu",
        metric_name="CPUUtilization",
        container_fields=("cpu",),
        task_field="cpu",
        unit_label="CPU units",
    ),
}


def get_metric_profile(metric_type: str) -> MetricProfile:
    """Look up the profile for 'memory' or 'cpu'"""
    try:
        return METRIC_PROFILES[metric_type.lower()]
    except KeyError:
        raise ConfigValidationError(
            f"METRIC_TYPE must be one of {sorted(METRIC_PROFILES)}, got '{metric_type}'"
        )


def get_report_output_path(cluster_name: str, output_dir: Optional[str] = None) -> str:
    """Get cluster-specific report path: {cluster_name}_recommendations.json"""
    return os.path.join(output_dir or OUTPUT_DIR, f"{cluster_name}_recommendations.json")


def default_cluster_info() -> Dict[str, Any]:
    """Cluster info built purely from environment defaults"""
    return {
        "cluster_name": ECS_CLUSTER,
        "region": AWS_REGION,
        "target_percent": TARGET_UTILIZATION_PERCENT,
        "metric_type": METRIC_TYPE,
        "launch_type": LAUNCH_TYPE,
    }


def load_clusters_file(path: str) -> List[Dict[str, Any]]:
    """Load a YAML file describing several clusters to analyze.

    Expected layout::

        defaults:
          region: us-east-1
          target_percent: 75
        clusters:
          - cluster_name: web
          - cluster_name: batch
            metric_type: cpu

    Entries inherit from ``defaults`` which in turn inherit from the
    environment. Raises ConfigValidationError on a malformed document.
    """
    with open(path, 'r', encoding='utf-8') as f:
        try:
            doc = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(doc, dict):
        raise ConfigValidationError(f"{path} must contain a mapping at the top level")

    defaults = {**default_cluster_info(), **(doc.get("defaults") or {})}
    entries = doc.get("clusters") or []
    if not isinstance(entries, list) or not entries:
        raise ConfigValidationError(f"No clusters defined in {path}")

    clusters = []
    for i, entry in enumerate(entries):
        if isinstance(entry, str):
            entry = {"cluster_name": entry}
        if not isinstance(entry, dict):
            raise ConfigValidationError(f"clusters[{i}] in {path} must be a mapping or a name")
        clusters.append({**defaults, **entry})
    return clusters


__all__ = [
    "AWS_REGION",
    "ECS_CLUSTER",
    "LAUNCH_TYPE",
    "TARGET_UTILIZATION_PERCENT",
    "METRIC_TYPE",
    "RESERVATION_GRANULARITY",
    "DRY_RUN",
    "METRIC_NAMESPACE",
    "LOOKBACK_HOURS",
    "PERIOD_SECONDS",
    "WINDOW_END_OFFSET_MINUTES",
    "MAX_CONCURRENCY",
    "LIST_SERVICES_PAGE_SIZE",
    "AWS_TIMEOUT_SECONDS",
    "AWS_MAX_ATTEMPTS",
    "OUTPUT_DIR",
    "METRIC_PROFILES",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "setup_logging",
    "get_metric_profile",
    "get_report_output_path",
    "default_cluster_info",
    "load_clusters_file",
    "validate_config",
    "validate_cluster_info",
]


# =============================================================================
# Configuration Validation
# =============================================================================
class ConfigValidationError(Exception):
    """Raised when configuration validation fails"""
    pass


def _validate_positive_int(name: str, value: int) -> None:
    if value <= 0:
        raise ConfigValidationError(f"{name} must be positive, got {value}")


def _validate_percent(name: str, value: Any) -> None:
    try:
        fv = float(value)
    except (TypeError, ValueError):
        raise ConfigValidationError(f"{name} must be a number, got '{value}'")
    if not (0 < fv <= 100):
        raise ConfigValidationError(f"{name} must be in (0, 100], got {fv}")


def _validate_metric_type(value: Any) -> None:
    if not isinstance(value, str) or value.lower() not in METRIC_PROFILES:
        raise ConfigValidationError(
            f"metric type must be one of {sorted(METRIC_PROFILES)}, got '{value}'"
        )


def validate_config() -> None:
    """Validate module-level configuration values on startup

    Raises:
        ConfigValidationError: If any configuration value is invalid
    """
    errors = []

    for name, value in (
        ("LOOKBACK_HOURS", LOOKBACK_HOURS),
        ("PERIOD_SECONDS", PERIOD_SECONDS),
        ("RESERVATION_GRANULARITY", RESERVATION_GRANULARITY),
        ("MAX_CONCURRENCY", MAX_CONCURRENCY),
        ("LIST_SERVICES_PAGE_SIZE", LIST_SERVICES_PAGE_SIZE),
        ("AWS_TIMEOUT_SECONDS", AWS_TIMEOUT_SECONDS),
        ("AWS_MAX_ATTEMPTS", AWS_MAX_ATTEMPTS),
    ):
        try:
            _validate_positive_int(name, value)
        except ConfigValidationError as e:
            errors.append(str(e))

    if WINDOW_END_OFFSET_MINUTES < 0:
        errors.append(f"WINDOW_END_OFFSET_MINUTES must not be negative, got {WINDOW_END_OFFSET_MINUTES}")

    # CloudWatch rejects periods that are not multiples of 60 for standard resolution
    if PERIOD_SECONDS % 60 != 0:
        errors.append(f"PERIOD_SECONDS must be a multiple of 60, got {PERIOD_SECONDS}")

    try:
        _validate_percent("TARGET_UTILIZATION_PERCENT", TARGET_UTILIZATION_PERCENT)
    except ConfigValidationError as e:
        errors.append(str(e))

    try:
        _validate_metric_type(METRIC_TYPE)
    except ConfigValidationError as e:
        errors.append(str(e))

    if errors:
        raise ConfigValidationError(
            "Configuration validation failed:\n  - " + "\n  - ".join(errors)
        )


def validate_cluster_info(cluster_info: Dict[str, Any]) -> None:
    """Validate a single cluster run description

    Raises:
        ConfigValidationError: listing every missing or invalid field
    """
    errors = []
    if not cluster_info.get("region"):
        errors.append("Must specify --region (or AWS_REGION)")
    if not cluster_info.get("cluster_name"):
        errors.append("Must specify --cluster (or ECS_CLUSTER)")

    try:
        _validate_percent("target percent", cluster_info.get("target_percent"))
    except ConfigValidationError as e:
        errors.append(str(e))

    try:
        _validate_metric_type(cluster_info.get("metric_type"))
    except ConfigValidationError as e:
        errors.append(str(e))

    if errors:
        raise ConfigValidationError(
            "Configuration validation failed:\n  - " + "\n  - ".join(errors)
        )
