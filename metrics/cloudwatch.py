import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .aws_client import AWS_CALL_ERRORS, QueryError, error_message
from .concurrency import bounded_map
from .paginator import paginate
from config import (
    METRIC_NAMESPACE, LOOKBACK_HOURS, PERIOD_SECONDS,
    WINDOW_END_OFFSET_MINUTES, MAX_CONCURRENCY
)
from models import MetricProfile, MetricSeries
from normalize.series import points_from_datapoints

logger = logging.getLogger(__name__)

SERVICE_DIMENSION = 'ServiceName'
CLUSTER_DIMENSION = 'ClusterName'


def _now() -> datetime:
    return datetime.now(timezone.utc)


def statistics_window(now: Optional[datetime] = None,
                      lookback_hours: int = LOOKBACK_HOURS,
                      end_offset_minutes: int = WINDOW_END_OFFSET_MINUTES) -> Tuple[datetime, datetime]:
    """Return (start, end) for the lookback window.

    The end is pulled back from `now` so the still-filling bucket is not read.
    """
    if now is None:
        now = _now()
    start = now - timedelta(hours=lookback_hours)
    end = now - timedelta(minutes=end_offset_minutes)
    return start, end


def list_metric_series(cloudwatch, metric_name: str, namespace: str = METRIC_NAMESPACE) -> List[Dict[str, Any]]:
    """Every metric descriptor published under namespace/metric_name."""
    return paginate(
        cloudwatch.list_metrics,
        {'Namespace': namespace, 'MetricName': metric_name},
        items_key='Metrics',
        token_key='NextToken',
    )


def _dimension(descriptor: Dict[str, Any], name: str) -> Optional[str]:
    for dim in descriptor.get('Dimensions') or []:
        if dim.get('Name') == name:
            return dim.get('Value')
    return None


def series_service_name(descriptor: Dict[str, Any], cluster: str) -> Optional[str]:
    """Service a metric descriptor belongs to, or None.

    Cluster-level series (no ServiceName dimension) and series tagged with a
    different ClusterName are not attributed to any service.
    """
    service = _dimension(descriptor, SERVICE_DIMENSION)
    if not service:
        return None
    series_cluster = _dimension(descriptor, CLUSTER_DIMENSION)
    if series_cluster is not None and series_cluster != cluster:
        return None
    return service


def select_series(descriptors: Iterable[Dict[str, Any]], cluster: str, services: Iterable[str]) -> List[str]:
    """Service names to fetch statistics for, in enumeration order.

    Descriptors for services that were not discovered are dropped. When two
    descriptors resolve to the same service the first one is kept.
    """
    wanted = set(services)
    selected: List[str] = []
    seen = set()
    for descriptor in descriptors:
        name = series_service_name(descriptor, cluster)
        if name is None or name not in wanted:
            logger.debug(f"Ignoring metric series {descriptor.get('Dimensions')}")
            continue
        if name in seen:
            logger.debug(f"Duplicate metric series for {name}; keeping the first")
            continue
        seen.add(name)
        selected.append(name)
    return selected


def fetch_metric_series(cloudwatch, cluster: str, service_name: str, metric_name: str,
                        start: datetime, end: datetime,
                        namespace: str = METRIC_NAMESPACE,
                        period: int = PERIOD_SECONDS) -> MetricSeries:
    """Hourly Maximum datapoints of one service's utilization metric."""
    params = {
        'Namespace': namespace,
        'MetricName': metric_name,
        'Dimensions': [
            {'Name': SERVICE_DIMENSION, 'Value': service_name},
            {'Name': CLUSTER_DIMENSION, 'Value': cluster},
        ],
        'StartTime': start,
        'EndTime': end,
        'Period': period,
        'Statistics': ['Maximum'],
        'Unit': 'Percent',
    }
    try:
        data = cloudwatch.get_metric_statistics(**params)
    except AWS_CALL_ERRORS as e:
        raise QueryError(f"Unable to fetch {metric_name} for {service_name}: {error_message(e)}") from e
    points = points_from_datapoints(data.get('Datapoints') or [], statistic='Maximum')
    return MetricSeries(service_name=service_name, metric_name=metric_name, points=points)


def collect_peak_utilization(cloudwatch, cluster: str, services: List[str], profile: MetricProfile,
                             namespace: str = METRIC_NAMESPACE,
                             period: int = PERIOD_SECONDS,
                             window: Optional[Tuple[datetime, datetime]] = None,
                             max_workers: int = MAX_CONCURRENCY) -> Dict[str, Optional[float]]:
    """
    Peak utilization percent per service over the lookback window.

    Returns a map keyed by service name. A service whose series returned no
    datapoints maps to None ("no signal"); a service without any series is
    absent from the map.
    """
    descriptors = list_metric_series(cloudwatch, profile.metric_name, namespace=namespace)
    selected = select_series(descriptors, cluster, services)
    logger.info(f"Found {len(descriptors)} {profile.metric_name} series, {len(selected)} for active services")

    start, end = window or statistics_window()

    def _fetch(name: str) -> MetricSeries:
        return fetch_metric_series(cloudwatch, cluster, name, profile.metric_name,
                                   start, end, namespace=namespace, period=period)

    peaks: Dict[str, Optional[float]] = {}
    for series in bounded_map(_fetch, selected, max_workers):
        peaks[series.service_name] = series.peak
        if series.peak is None:
            logger.debug(f"No datapoints for {series.service_name} between {start} and {end}")
    return peaks
