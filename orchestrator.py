"""Orchestrator: verify identity -> discover services -> collect peaks -> resolve reservations -> recommend.
Read-only. Nothing is ever changed in the cluster; output is a table on stdout and an optional JSON report.
"""
import argparse
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from config import (
    setup_logging, validate_config, validate_cluster_info, ConfigValidationError,
    default_cluster_info, load_clusters_file, get_metric_profile, get_report_output_path,
    DRY_RUN, LAUNCH_TYPE, MAX_CONCURRENCY, METRIC_NAMESPACE, PERIOD_SECONDS, LOOKBACK_HOURS,
    RESERVATION_GRANULARITY, METRIC_PROFILES
)
from metrics.aws_client import AwsError, get_clients, verify_identity
from metrics import cloudwatch as cloudwatch_mod
from metrics import discovery as discovery_mod
from metrics import reservations as reservations_mod
from analysis import recommendation as recommendation_mod
from report import build_report, render_recommendations, write_report

logger = logging.getLogger(__name__)


def _window_info(start: datetime, end: datetime) -> Dict[str, Any]:
    return {
        'start': start.isoformat(),
        'end': end.isoformat(),
        'period_seconds': PERIOD_SECONDS,
        'lookback_hours': LOOKBACK_HOURS,
        'namespace': METRIC_NAMESPACE,
    }


def run_once_for_cluster(cluster_info: Dict[str, Any],
                         clients=None,
                         dry_run: bool = False,
                         max_workers: int = MAX_CONCURRENCY,
                         now: Optional[datetime] = None) -> Dict[str, Any]:
    """Run the advisor for a single cluster

    Args:
        cluster_info: Dict with cluster_name, region, target_percent, metric_type, launch_type
        clients: AwsClients to use; built from the region when omitted
        dry_run: also log the query plan and mark the report as a dry run

    Returns:
        Dict with 'report', 'recommendations', 'skipped' and 'profile'

    Raises:
        AwsError: on any failed AWS call
    """
    cluster = cluster_info['cluster_name']
    region = cluster_info['region']
    target = float(cluster_info['target_percent'])
    profile = get_metric_profile(cluster_info['metric_type'])
    launch_type = cluster_info.get('launch_type') or LAUNCH_TYPE

    if clients is None:
        clients = get_clients(region)

    logger.info("Validating AWS credentials...")
    arn = verify_identity(clients.sts)
    logger.info(f"Logged in as {arn}")

    start, end = cloudwatch_mod.statistics_window(now or datetime.now(timezone.utc))
    window = _window_info(start, end)

    if dry_run:
        logger.info(f"[dry-run] cluster={cluster} region={region} launch_type={launch_type}")
        logger.info(f"[dry-run] metric={METRIC_NAMESPACE}/{profile.metric_name} Maximum "
                    f"period={PERIOD_SECONDS}s window={window['start']} .. {window['end']}")
        logger.info(f"[dry-run] target={target}% granularity={RESERVATION_GRANULARITY} "
                    f"reservation fields={list(profile.container_fields)}")

    logger.info(f"Enumerating {launch_type} services in cluster: {cluster}...")
    services = discovery_mod.discover_services(clients.ecs, cluster, launch_type=launch_type)
    logger.info(f"Found {len(services)} service(s)")

    logger.info(f"Fetching {profile.metric_name} statistics for active services...")
    peaks = cloudwatch_mod.collect_peak_utilization(
        clients.cloudwatch, cluster, services, profile,
        window=(start, end), max_workers=max_workers,
    )

    logger.info("Looking up task definitions for services...")
    reservations = reservations_mod.resolve_reservations(
        clients.ecs, cluster, services, profile, max_workers=max_workers,
    )

    logger.info("Looking for improvements...")
    recommendations, skipped = recommendation_mod.build_recommendations(
        services, peaks, reservations, profile.metric_type, target,
    )
    for s in skipped:
        logger.info(f"Skipping {s.service_name}: {s.reason}")

    report = build_report(cluster_info, recommendations, skipped, window)
    if dry_run:
        report['dry_run'] = True
    return {'report': report, 'recommendations': recommendations, 'skipped': skipped, 'profile': profile}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='ecs-reservation-advisor',
        description='Propose ECS container reservations sized to a target utilization.',
    )
    parser.add_argument('-r', '--region', help='AWS region (default: AWS_REGION)')
    parser.add_argument('-c', '--cluster', help='ECS cluster (default: ECS_CLUSTER)')
    parser.add_argument('-p', '--percent', type=float,
                        help='Target percentage utilization for services (default: TARGET_UTILIZATION_PERCENT or 80)')
    parser.add_argument('-m', '--metric', choices=sorted(METRIC_PROFILES),
                        help='Metric to size against (default: METRIC_TYPE or memory)')
    parser.add_argument('-d', '--dry-run', action='store_true', default=DRY_RUN,
                        help='Log the query plan as well; the advisor never changes the cluster in any mode')
    parser.add_argument('-o', '--output-dir',
                        help='Also write a JSON report per cluster into this directory')
    parser.add_argument('--max-concurrency', type=int, default=MAX_CONCURRENCY,
                        help='Maximum parallel AWS calls per stage')
    parser.add_argument('--config', dest='config_path',
                        help='YAML file listing several clusters to analyze')
    return parser


def _clusters_from_args(args: argparse.Namespace) -> List[Dict[str, Any]]:
    clusters = load_clusters_file(args.config_path) if args.config_path else [default_cluster_info()]
    overrides = {
        'region': args.region,
        'target_percent': args.percent,
        'metric_type': args.metric,
    }
    if args.cluster:
        if args.config_path:
            raise ConfigValidationError("--cluster cannot be combined with --config")
        overrides['cluster_name'] = args.cluster
    overrides = {k: v for k, v in overrides.items() if v is not None}
    return [{**c, **overrides} for c in clusters]


def main(argv: Optional[List[str]] = None) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)

    try:
        validate_config()
        if args.max_concurrency <= 0:
            raise ConfigValidationError(f"--max-concurrency must be positive, got {args.max_concurrency}")
        clusters = _clusters_from_args(args)
    except (ConfigValidationError, OSError) as e:
        logger.error(f"Configuration error: {e}")
        return 1

    success_count = 0
    failed_count = 0

    for cluster_info in clusters:
        cluster_name = cluster_info.get('cluster_name') or 'unknown'
        try:
            validate_cluster_info(cluster_info)
            result = run_once_for_cluster(
                cluster_info, dry_run=args.dry_run, max_workers=args.max_concurrency,
            )
        except (AwsError, ConfigValidationError) as e:
            logger.error(f"[{cluster_name}] ERROR: {e}")
            failed_count += 1
            continue

        if len(clusters) > 1:
            print(f"\nCluster: {cluster_name}")
        print(render_recommendations(result['recommendations'], result['skipped'], result['profile']))

        if args.output_dir:
            path = get_report_output_path(cluster_name, args.output_dir)
            try:
                write_report(path, result['report'])
            except OSError as e:
                logger.error(f"[{cluster_name}] Failed to write report {path}: {e}")
                failed_count += 1
                continue
            logger.info(f"[{cluster_name}] Wrote report to {path}")

        success_count += 1

    if len(clusters) > 1:
        logger.info(f"Analysis complete: {success_count} succeeded, {failed_count} failed")
    else:
        logger.info("ecs-reservation-advisor completed" + (" successfully" if failed_count == 0 else " with errors"))

    return 0 if failed_count == 0 else 1


if __name__ == '__main__':
    raise SystemExit(main())
