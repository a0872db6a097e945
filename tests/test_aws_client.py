"""
Tests for the AWS client layer
"""
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import EndpointConnectionError

from conftest import make_client_error
from metrics.aws_client import (
    AwsError,
    AuthError,
    PaginationError,
    QueryError,
    error_message,
    get_clients,
    verify_identity,
)


class TestErrorHierarchy:

    @pytest.mark.parametrize("cls", [AuthError, PaginationError, QueryError])
    def test_inherits_aws_error(self, cls):
        assert issubclass(cls, AwsError)


class TestVerifyIdentity:

    def test_returns_arn(self):
        sts = MagicMock()
        sts.get_caller_identity.return_value = {"Arn": "arn:aws:iam::1:user/me"}
        assert verify_identity(sts) == "arn:aws:iam::1:user/me"

    def test_client_error_becomes_auth_error(self):
        sts = MagicMock()
        err = make_client_error("ExpiredToken", "The security token included in the request is expired",
                                "GetCallerIdentity")
        sts.get_caller_identity.side_effect = err

        with pytest.raises(AuthError) as exc_info:
            verify_identity(sts)
        assert "ExpiredToken" in str(exc_info.value)
        assert exc_info.value.__cause__ is err

    def test_connection_error_becomes_auth_error(self):
        sts = MagicMock()
        sts.get_caller_identity.side_effect = EndpointConnectionError(endpoint_url="https://sts.amazonaws.com")
        with pytest.raises(AuthError):
            verify_identity(sts)

    def test_missing_arn(self):
        sts = MagicMock()
        sts.get_caller_identity.return_value = {}
        with pytest.raises(AuthError):
            verify_identity(sts)


def test_error_message_formats_client_error():
    assert error_message(make_client_error("AccessDenied", "denied")) == "AccessDenied: denied"
    assert error_message(ValueError("plain")) == "plain"


def test_get_clients_uses_session():
    session = MagicMock()
    session.client.side_effect = lambda name, **kw: f"{name}-client"

    clients = get_clients("eu-west-1", session=session)

    assert clients.sts == "sts-client"
    assert clients.ecs == "ecs-client"
    assert clients.cloudwatch == "cloudwatch-client"
    kwargs = session.client.call_args.kwargs
    assert kwargs["region_name"] == "eu-west-1"
    assert kwargs["config"].retries["mode"] == "standard"
