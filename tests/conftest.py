"""
Test fixtures and configuration for pytest
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from metrics.aws_client import AwsClients


NOW = datetime(2026, 1, 4, 12, 0, tzinfo=timezone.utc)


def make_client_error(code="AccessDenied", message="denied", operation="ListServices"):
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def service_arn(name, cluster="prod"):
    return f"arn:aws:ecs:us-east-1:123456789012:service/{cluster}/{name}"


def metric_descriptor(service, cluster="prod", metric_name="MemoryUtilization"):
    return {
        "Namespace": "AWS/ECS",
        "MetricName": metric_name,
        "Dimensions": [
            {"Name": "ServiceName", "Value": service},
            {"Name": "ClusterName", "Value": cluster},
        ],
    }


def datapoints(values, start=NOW - timedelta(hours=24)):
    # CloudWatch does not order datapoints; reverse to make sure callers sort
    pts = [
        {"Timestamp": start + timedelta(hours=i), "Maximum": v, "Unit": "Percent"}
        for i, v in enumerate(values)
    ]
    return list(reversed(pts))


def task_definition(arn, containers):
    return {"taskDefinition": {"taskDefinitionArn": arn, "containerDefinitions": containers}}


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def fake_cluster():
    """
    MagicMock ECS/CloudWatch/STS clients describing a small cluster:

      api      - single container, 512 MiB, peak 45%
      worker   - single container, 256 MiB, peak 10%
      sidecar  - two containers (never recommended)
      idle     - single container, 1024 MiB, metric series without datapoints
      orphan   - single container, 128 MiB, no metric series at all
    """
    specs = {
        "api": ("td/api:3", [{"name": "api", "memory": 512, "cpu": 256}]),
        "worker": ("td/worker:7", [{"name": "worker", "memoryReservation": 256, "cpu": 128}]),
        "sidecar": ("td/sidecar:1", [{"name": "app", "memory": 512}, {"name": "envoy", "memory": 128}]),
        "idle": ("td/idle:2", [{"name": "idle", "memory": 1024}]),
        "orphan": ("td/orphan:1", [{"name": "orphan", "memory": 128}]),
    }
    peaks = {
        "api": [30.0, 45.0, 12.5],
        "worker": [10.0, 4.0],
        "sidecar": [50.0],
        "idle": [],
    }

    ecs = MagicMock(name="ecs")
    ecs.list_services.side_effect = [
        {"serviceArns": [service_arn(n) for n in ("worker", "api", "sidecar")], "nextToken": "t1"},
        {"serviceArns": [service_arn(n) for n in ("idle", "orphan")]},
    ]

    def describe_services(cluster, services):
        return {
            "services": [
                {"serviceName": n, "serviceArn": service_arn(n), "taskDefinition": specs[n][0]}
                for n in services if n in specs
            ],
            "failures": [],
        }

    def describe_task_definition(taskDefinition):
        for arn, containers in specs.values():
            if arn == taskDefinition:
                return task_definition(arn, containers)
        raise make_client_error("ClientException", "Unable to describe task definition", "DescribeTaskDefinition")

    ecs.describe_services.side_effect = describe_services
    ecs.describe_task_definition.side_effect = describe_task_definition

    cloudwatch = MagicMock(name="cloudwatch")
    cloudwatch.list_metrics.return_value = {
        "Metrics": [metric_descriptor(n) for n in ("api", "worker", "sidecar", "idle", "retired")]
    }

    def get_metric_statistics(**params):
        service = params["Dimensions"][0]["Value"]
        return {"Label": params["MetricName"], "Datapoints": datapoints(peaks.get(service, []))}

    cloudwatch.get_metric_statistics.side_effect = get_metric_statistics

    sts = MagicMock(name="sts")
    sts.get_caller_identity.return_value = {
        "Arn": "arn:aws:iam::123456789012:user/operator",
        "Account": "123456789012",
    }

    return AwsClients(sts=sts, ecs=ecs, cloudwatch=cloudwatch)


@pytest.fixture
def cluster_info():
    return {
        "cluster_name": "prod",
        "region": "us-east-1",
        "target_percent": 80.0,
        "metric_type": "memory",
        "launch_type": "EC2",
    }
