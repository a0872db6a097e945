from typing import Any, Dict, List

from models import MetricPoint


def points_from_datapoints(datapoints: List[Dict[str, Any]], statistic: str = "Maximum") -> List[MetricPoint]:
    """Convert CloudWatch datapoints into MetricPoints ordered by timestamp.

    CloudWatch returns datapoints unordered. Entries without the statistic or
    with a non-numeric or NaN value are dropped.
    """
    points: List[MetricPoint] = []
    for dp in datapoints or []:
        ts = dp.get("Timestamp")
        v = dp.get(statistic)
        if ts is None or v is None:
            continue
        try:
            fv = float(v)
        except (TypeError, ValueError):
            continue
        if fv != fv:  # NaN
            continue
        points.append(MetricPoint(timestamp=ts, value=fv))
    points.sort(key=lambda p: p.timestamp)
    return points
