import logging
from typing import Any, Dict, List, Optional, Tuple

from .aws_client import AWS_CALL_ERRORS, QueryError, error_message
from .concurrency import bounded_map
from config import MAX_CONCURRENCY
from models import MetricProfile, ReservationSpec

logger = logging.getLogger(__name__)

# DescribeServices accepts at most 10 services per call
DESCRIBE_SERVICES_BATCH = 10


def _chunks(items: List[str], size: int) -> List[List[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def _positive_number(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        fv = float(value)
    except (TypeError, ValueError):
        return None
    return fv if fv > 0 else None


def extract_reservation(task_definition: Dict[str, Any], profile: MetricProfile) -> Tuple[int, Optional[float], Optional[str]]:
    """Return (container_count, reserved_value, source_field) for a task definition.

    Only single-container definitions yield a value. Container fields are tried
    in profile order and the task-level field is the fallback; unset and zero
    values count as absent.
    """
    containers = task_definition.get('containerDefinitions') or []
    if len(containers) != 1:
        return len(containers), None, None
    container = containers[0]
    for fname in profile.container_fields:
        value = _positive_number(container.get(fname))
        if value is not None:
            return 1, value, fname
    if profile.task_field:
        value = _positive_number(task_definition.get(profile.task_field))
        if value is not None:
            return 1, value, f"task.{profile.task_field}"
    return 1, None, None


def describe_task_definitions_for_services(ecs, cluster: str, services: List[str]) -> Dict[str, str]:
    """Map service name -> current task definition ARN.

    Services ECS reports as failures, or omits, are left out of the map.
    """
    result: Dict[str, str] = {}
    for batch in _chunks(services, DESCRIBE_SERVICES_BATCH):
        try:
            data = ecs.describe_services(cluster=cluster, services=batch)
        except AWS_CALL_ERRORS as e:
            raise QueryError(f"Unable to describe services in {cluster}: {error_message(e)}") from e
        for svc in data.get('services') or []:
            name = svc.get('serviceName')
            td = svc.get('taskDefinition')
            if name and td:
                result[name] = td
        for failure in data.get('failures') or []:
            logger.warning(f"DescribeServices failure for {failure.get('arn')}: {failure.get('reason')}")
    return result


def describe_task_definition(ecs, task_definition: str) -> Dict[str, Any]:
    try:
        data = ecs.describe_task_definition(taskDefinition=task_definition)
    except AWS_CALL_ERRORS as e:
        raise QueryError(f"Unable to describe task definition {task_definition}: {error_message(e)}") from e
    return data.get('taskDefinition') or {}


def resolve_reservations(ecs, cluster: str, services: List[str], profile: MetricProfile,
                         max_workers: int = MAX_CONCURRENCY) -> Dict[str, ReservationSpec]:
    """
    Current reservation of every service for the active metric type.

    Every requested service gets a ReservationSpec. Services that could not be
    described get container_count 0; multi-container definitions keep their
    count but no reserved value.
    """
    task_defs = describe_task_definitions_for_services(ecs, cluster, services)

    # several services may share a revision
    arns = sorted(set(task_defs.values()))
    definitions = dict(zip(arns, bounded_map(lambda arn: describe_task_definition(ecs, arn), arns, max_workers)))

    specs: Dict[str, ReservationSpec] = {}
    for name in services:
        arn = task_defs.get(name)
        if arn is None:
            specs[name] = ReservationSpec(service_name=name, task_definition=None, container_count=0)
            continue
        count, value, source = extract_reservation(definitions.get(arn, {}), profile)
        specs[name] = ReservationSpec(
            service_name=name,
            task_definition=arn,
            container_count=count,
            reserved_value=value,
            source_field=source,
        )
        logger.debug(f"{name}: {arn} containers={count} {profile.metric_type}={value} ({source})")
    return specs
