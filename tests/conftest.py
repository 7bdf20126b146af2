from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError

from eipctl.aws.context import AwsContext
from eipctl.control.records import FloatingIP, Instance


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "uses_moto: test uses moto @mock_aws (allows boto3 calls)"
    )


@pytest.fixture(autouse=True)
def _block_real_aws(request, monkeypatch):
    """Prevent any test from making real AWS API calls."""
    if request.node.get_closest_marker("uses_moto"):
        return

    def _blocked_client(service, *a, **kw):
        raise RuntimeError(
            f"Unmocked boto3.client('{service}') call! "
            f"Add a @patch or fixture mock for this AWS call."
        )

    def _blocked_session(*a, **kw):
        raise RuntimeError(
            "Unmocked boto3.Session() call! "
            "Add a @patch or fixture mock for this AWS call."
        )

    monkeypatch.setattr(boto3, "client", _blocked_client)
    monkeypatch.setattr(boto3, "Session", _blocked_session)


@pytest.fixture
def aws_ctx():
    return AwsContext(region="us-east-1")


@pytest.fixture
def mock_ctx():
    """An AwsContext stand-in whose client() hands back one MagicMock per service."""
    clients = {}

    def _client(service):
        return clients.setdefault(service, MagicMock(name=f"{service}-client"))

    ctx = MagicMock()
    ctx.region = "us-east-1"
    ctx.client.side_effect = _client
    ctx.clients = clients
    return ctx


# ── Record factories ──


@pytest.fixture
def make_floating_ip():
    """Factory for FloatingIP with sensible defaults. Override any field via kwargs."""
    def _make(**overrides):
        defaults = dict(
            name="web-eip", allocation_id="eipalloc-111", public_ip="52.1.2.3",
        )
        defaults.update(overrides)
        return FloatingIP(**defaults)
    return _make


@pytest.fixture
def make_instance():
    """Factory for Instance with sensible defaults. Override any field via kwargs."""
    def _make(**overrides):
        defaults = dict(
            name="web", instance_id="i-test123", image_id="ami-test123",
            instance_type="t3.medium", state="pending",
        )
        defaults.update(overrides)
        return Instance(**defaults)
    return _make


@pytest.fixture
def make_client_error():
    """Factory for botocore ClientError."""
    def _make(code: str, message: str = "error"):
        return ClientError({"Error": {"Code": code, "Message": message}}, "TestOp")
    return _make
