"""Plain data records passed between pipeline stages."""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from normalize.math import p100


@dataclass(frozen=True)
class MetricProfile:
    """Which CloudWatch metric to read and where its reservation lives."""
    metric_type: str
    metric_name: str
    # container definition keys, first present non-zero value wins
    container_fields: Tuple[str, ...]
    # task-level fallback key (string valued in the ECS API)
    task_field: Optional[str] = None
    unit_label: str = ""


@dataclass(frozen=True)
class MetricPoint:
    timestamp: datetime
    value: float


@dataclass
class MetricSeries:
    service_name: str
    metric_name: str
    points: List[MetricPoint] = field(default_factory=list)

    @property
    def peak(self) -> Optional[float]:
        if not self.points:
            return None
        return p100([p.value for p in self.points])


@dataclass
class ReservationSpec:
    service_name: str
    task_definition: Optional[str]
    container_count: int
    reserved_value: Optional[float] = None
    source_field: Optional[str] = None

    @property
    def applicable(self) -> bool:
        return self.container_count == 1 and self.reserved_value is not None


@dataclass
class Recommendation:
    service_name: str
    metric_type: str
    observed_peak_percent: Optional[float]
    current_reservation: float
    estimated_usage: Optional[float]
    proposed_reservation: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SkippedService:
    service_name: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
