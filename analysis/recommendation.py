from typing import Dict, List, Optional, Tuple

from config import RESERVATION_GRANULARITY
from models import Recommendation, ReservationSpec, SkippedService
from normalize.math import round_to_multiple


def estimate_usage(peak_percent: float, current_reservation: float) -> float:
    """Absolute resource amount used at peak."""
    return peak_percent / 100.0 * current_reservation


def propose_reservation(peak_percent: float, current_reservation: float, target_percent: float,
                        granularity: int = RESERVATION_GRANULARITY) -> int:
    """
    Reservation at which the observed peak would sit at `target_percent`.

    Equivalent to (peak/100 * current) / (target/100); the percentages are
    cancelled before dividing so exact multiples stay exact.
    """
    if target_percent <= 0:
        raise ValueError("target_percent must be positive")
    proposed = peak_percent * current_reservation / target_percent
    return round_to_multiple(proposed, granularity)


def _skip_reason(spec: Optional[ReservationSpec]) -> Optional[str]:
    if spec is None or spec.task_definition is None:
        return "service could not be described"
    if spec.container_count != 1:
        return f"task definition has {spec.container_count} containers"
    if spec.reserved_value is None:
        return "no reservation configured on the container"
    return None


def build_recommendations(services: List[str],
                          peaks: Dict[str, Optional[float]],
                          reservations: Dict[str, ReservationSpec],
                          metric_type: str,
                          target_percent: float,
                          granularity: int = RESERVATION_GRANULARITY) -> Tuple[List[Recommendation], List[SkippedService]]:
    """
    Join discovered services with their peak utilization and reservation.

    Joins by service name. Services without an applicable single-container
    reservation are returned as skipped with a reason. A service with no
    metric signal still gets a Recommendation whose peak and proposal are None.
    """
    recommendations: List[Recommendation] = []
    skipped: List[SkippedService] = []

    for name in services:
        spec = reservations.get(name)
        reason = _skip_reason(spec)
        if reason is not None:
            skipped.append(SkippedService(service_name=name, reason=reason))
            continue

        current = spec.reserved_value
        peak = peaks.get(name)
        if peak is None:
            recommendations.append(Recommendation(
                service_name=name,
                metric_type=metric_type,
                observed_peak_percent=None,
                current_reservation=current,
                estimated_usage=None,
                proposed_reservation=None,
            ))
            continue

        recommendations.append(Recommendation(
            service_name=name,
            metric_type=metric_type,
            observed_peak_percent=peak,
            current_reservation=current,
            estimated_usage=estimate_usage(peak, current),
            proposed_reservation=propose_reservation(peak, current, target_percent, granularity),
        ))

    return recommendations, skipped
