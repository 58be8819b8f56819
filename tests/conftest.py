"""Pytest configuration and fixtures."""

from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import ClientError

from aws_tutorials.config import (
    Config,
    RetrySettings,
    TutorialSettings,
    WaiterSettings,
)


@pytest.fixture
def mock_aws_credentials(monkeypatch):
    """Mock AWS credentials for testing."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def test_config(tmp_path):
    """Configuration with fast waiters and a temporary work directory."""
    return Config(
        waiters=WaiterSettings(delay=1, max_attempts=3, poll_interval=0, poll_timeout=5),
        retry=RetrySettings(attempts=3, delay=0, backoff="fixed"),
        tutorial=TutorialSettings(
            resource_prefix="test",
            cleanup_mode="always",
            work_dir=tmp_path,
            pause_seconds=0,
        ),
    )


@pytest.fixture
def no_sleep():
    """Skip real sleeping in waiting helpers."""
    with patch("aws_tutorials.core.waiters.time.sleep") as mock_sleep:
        yield mock_sleep


@pytest.fixture
def mock_clients():
    """
    Patch client creation so every tutorial gets Mock clients.

    The returned dict maps service name to its Mock; a client is created on
    first request and reused afterwards.
    """
    clients = {}

    def factory(service_name, region=None):
        return clients.setdefault(service_name, Mock(name=service_name))

    with patch("aws_tutorials.core.tutorial.get_boto3_client", side_effect=factory):
        yield clients


@pytest.fixture
def client_error():
    """Factory for botocore ClientErrors with a given error code."""

    def make(code, operation="Operation", message="error"):
        return ClientError({"Error": {"Code": code, "Message": message}}, operation)

    return make
