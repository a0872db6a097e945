import logging
from typing import Any, Dict, NamedTuple, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from config import AWS_TIMEOUT_SECONDS, AWS_MAX_ATTEMPTS

logger = logging.getLogger(__name__)

# Errors raised by boto3 calls that we translate at the AWS boundary
AWS_CALL_ERRORS = (ClientError, BotoCoreError)


class AwsError(Exception):
    pass


class AuthError(AwsError):
    """Caller identity could not be confirmed"""
    pass


class PaginationError(AwsError):
    """A list call failed before all pages were read"""
    pass


class QueryError(AwsError):
    """A describe or statistics call failed"""
    pass


class AwsClients(NamedTuple):
    sts: Any
    ecs: Any
    cloudwatch: Any


def _client_config() -> Config:
    return Config(
        connect_timeout=AWS_TIMEOUT_SECONDS,
        read_timeout=AWS_TIMEOUT_SECONDS,
        retries={'max_attempts': AWS_MAX_ATTEMPTS, 'mode': 'standard'},
    )


def get_clients(region: str, session: Optional[boto3.session.Session] = None) -> AwsClients:
    """Build the STS, ECS and CloudWatch clients for one region."""
    session = session or boto3.session.Session(region_name=region)
    cfg = _client_config()
    return AwsClients(
        sts=session.client('sts', region_name=region, config=cfg),
        ecs=session.client('ecs', region_name=region, config=cfg),
        cloudwatch=session.client('cloudwatch', region_name=region, config=cfg),
    )


def error_message(err: Exception) -> str:
    """Short human readable text for a botocore error"""
    if isinstance(err, ClientError):
        detail: Dict[str, Any] = err.response.get('Error', {})
        code = detail.get('Code', 'Unknown')
        msg = detail.get('Message', str(err))
        return f"{code}: {msg}"
    return str(err)


def verify_identity(sts) -> str:
    """Confirm credentials via GetCallerIdentity and return the caller ARN.

    Raises:
        AuthError: when the identity call fails
    """
    try:
        data = sts.get_caller_identity()
    except AWS_CALL_ERRORS as e:
        raise AuthError(f"Unable to validate AWS credentials: {error_message(e)}") from e
    arn = data.get('Arn')
    if not arn:
        raise AuthError("GetCallerIdentity returned no ARN")
    return arn
