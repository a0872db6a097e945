"""Rendering of recommendation results: text table and JSON report."""
import json
import math
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from models import MetricProfile, Recommendation, SkippedService

UNKNOWN = "?"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _format_number(value: Optional[float]) -> str:
    if value is None:
        return UNKNOWN
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


def _format_percent(value: Optional[float]) -> str:
    if value is None:
        return UNKNOWN
    # halves round up: 44.5 -> 45%
    return f"{math.floor(value + 0.5)}%"


def table_headers(profile: MetricProfile) -> List[str]:
    label = profile.metric_type.capitalize() if profile.metric_type != "cpu" else "CPU"
    return ["Service", f"Max {label} Used", "Current Reservation", "Proposed Reservation"]


def format_table(headers: List[str], rows: List[List[str]]) -> str:
    """Align rows under headers as a pipe separated table."""
    col_widths = [len(h) for h in headers]
    for row in rows:
        for i, val in enumerate(row):
            col_widths[i] = max(col_widths[i], len(val))

    output = []
    header_line = " | ".join(f"{h:<{col_widths[i]}}" for i, h in enumerate(headers))
    output.append(header_line)
    output.append("-" * len(header_line))
    for row in rows:
        output.append(" | ".join(f"{val:<{col_widths[i]}}" for i, val in enumerate(row)))
    return "\n".join(output)


def render_recommendations(recommendations: List[Recommendation],
                           skipped: List[SkippedService],
                           profile: MetricProfile) -> str:
    rows = [
        [
            rec.service_name,
            _format_percent(rec.observed_peak_percent),
            _format_number(rec.current_reservation),
            _format_number(rec.proposed_reservation),
        ]
        for rec in recommendations
    ]
    text = format_table(table_headers(profile), rows)
    if skipped:
        lines = [f"  {s.service_name}: {s.reason}" for s in skipped]
        text += "\n\nSkipped services:\n" + "\n".join(lines)
    return text


def build_report(cluster_info: Dict[str, Any],
                 recommendations: List[Recommendation],
                 skipped: List[SkippedService],
                 window: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-serializable summary of one cluster run."""
    return {
        'generated_at': _now_iso(),
        'cluster_info': {
            'cluster_name': cluster_info.get('cluster_name'),
            'region': cluster_info.get('region'),
            'metric_type': cluster_info.get('metric_type'),
            'target_percent': cluster_info.get('target_percent'),
            'launch_type': cluster_info.get('launch_type'),
        },
        'window': window,
        'summary': {
            'recommendation_count': len(recommendations),
            'unmeasured_count': sum(1 for r in recommendations if r.observed_peak_percent is None),
            'skipped_count': len(skipped),
        },
        'recommendations': [r.to_dict() for r in recommendations],
        'skipped': [s.to_dict() for s in skipped],
    }


def atomic_write(path: str, data: str) -> None:
    dirp = os.path.dirname(path) or '.'
    os.makedirs(dirp, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix='.tmp_report_', dir=dirp)
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(data)
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)


def write_report(path: str, report: Dict[str, Any]) -> None:
    atomic_write(path, json.dumps(report, indent=2))
