import boto3
from moto import mock_aws
import pytest

from eipctl.aws.eip import (
    MANAGED_TAG,
    allocate_address,
    associate_address,
    disassociate_address,
    find_address_by_instance,
    find_address_by_tag,
    find_managed_addresses,
    get_address,
    release_address,
    tag_address,
)
from eipctl.errors import LookupAmbiguous, ProviderError

pytestmark = pytest.mark.uses_moto


def _launch_instance(ec2):
    """Launch a minimal EC2 instance for EIP association tests."""
    response = ec2.run_instances(
        ImageId="ami-test",
        InstanceType="t3.micro",
        MinCount=1,
        MaxCount=1,
    )
    return response["Instances"][0]["InstanceId"]


@mock_aws
def test_allocate_address_tags_name_and_managed(aws_ctx):
    address = allocate_address(aws_ctx, "web-eip")
    assert address.allocation_id.startswith("eipalloc-")
    assert address.public_ip
    assert address.name == "web-eip"
    assert not address.associated

    ec2 = boto3.client("ec2", region_name="us-east-1")
    addresses = ec2.describe_addresses(AllocationIds=[address.allocation_id])
    tags = {t["Key"]: t["Value"] for t in addresses["Addresses"][0].get("Tags", [])}
    assert tags["Name"] == "web-eip"
    assert tags[MANAGED_TAG] == "true"


@mock_aws
def test_find_address_by_tag(aws_ctx):
    created = allocate_address(aws_ctx, "stagingEip")
    allocate_address(aws_ctx, "prodEip")

    found = find_address_by_tag(aws_ctx, "stagingEip")
    assert found.allocation_id == created.allocation_id
    assert found.name == "stagingEip"


@mock_aws
def test_find_address_by_tag_missing_returns_none(aws_ctx):
    allocate_address(aws_ctx, "other")
    assert find_address_by_tag(aws_ctx, "stagingEip") is None


@mock_aws
def test_find_address_by_tag_duplicate_tags_is_ambiguous(aws_ctx):
    allocate_address(aws_ctx, "dup")
    allocate_address(aws_ctx, "dup")

    with pytest.raises(LookupAmbiguous) as exc_info:
        find_address_by_tag(aws_ctx, "dup")
    assert len(exc_info.value.matches) == 2


@mock_aws
def test_associate_and_find_by_instance(aws_ctx):
    ec2 = boto3.client("ec2", region_name="us-east-1")
    instance_id = _launch_instance(ec2)
    address = allocate_address(aws_ctx, "web-eip")

    assoc_id = associate_address(aws_ctx, address.allocation_id, instance_id)
    assert assoc_id

    live = find_address_by_instance(aws_ctx, instance_id)
    assert live.allocation_id == address.allocation_id
    assert live.instance_id == instance_id
    assert live.associated


@mock_aws
def test_find_address_by_instance_none_attached(aws_ctx):
    ec2 = boto3.client("ec2", region_name="us-east-1")
    instance_id = _launch_instance(ec2)
    allocate_address(aws_ctx, "unattached")
    assert find_address_by_instance(aws_ctx, instance_id) is None


@mock_aws
def test_disassociate_address(aws_ctx):
    ec2 = boto3.client("ec2", region_name="us-east-1")
    instance_id = _launch_instance(ec2)
    address = allocate_address(aws_ctx, "web-eip")
    associate_address(aws_ctx, address.allocation_id, instance_id)

    disassociate_address(aws_ctx, address.allocation_id)

    assert find_address_by_instance(aws_ctx, instance_id) is None
    assert not get_address(aws_ctx, address.allocation_id).associated


@mock_aws
def test_disassociate_address_idempotent(aws_ctx):
    """Disassociate is a no-op when EIP is not associated."""
    address = allocate_address(aws_ctx, "noop")
    disassociate_address(aws_ctx, address.allocation_id)  # Should not raise


@mock_aws
def test_get_address_unknown_allocation_returns_none(aws_ctx):
    assert get_address(aws_ctx, "eipalloc-00000000") is None


@mock_aws
def test_release_address(aws_ctx):
    address = allocate_address(aws_ctx, "release-me")
    release_address(aws_ctx, address.allocation_id)
    assert find_address_by_tag(aws_ctx, "release-me") is None


@mock_aws
def test_tag_address_renames(aws_ctx):
    address = allocate_address(aws_ctx, "stagingEip")

    tag_address(aws_ctx, address.allocation_id, "prodEip")

    assert find_address_by_tag(aws_ctx, "stagingEip") is None
    assert find_address_by_tag(aws_ctx, "prodEip").allocation_id == address.allocation_id
    assert [a.name for a in find_managed_addresses(aws_ctx)] == ["prodEip"]


@mock_aws
def test_find_managed_addresses_skips_foreign(aws_ctx):
    ec2 = boto3.client("ec2", region_name="us-east-1")
    allocate_address(aws_ctx, "ours")
    ec2.allocate_address(Domain="vpc")

    results = find_managed_addresses(aws_ctx)
    assert [r.name for r in results] == ["ours"]


def test_find_address_by_tag_provider_error_propagates(mock_ctx, make_client_error):
    mock_ctx.client("ec2").describe_addresses.side_effect = make_client_error("UnauthorizedOperation")

    with pytest.raises(ProviderError) as exc_info:
        find_address_by_tag(mock_ctx, "stagingEip")
    assert exc_info.value.code == "UnauthorizedOperation"
    assert exc_info.value.operation == "DescribeAddresses"
    assert "stagingEip" in exc_info.value.resource


def test_get_address_other_client_error_propagates(mock_ctx, make_client_error):
    mock_ctx.client("ec2").describe_addresses.side_effect = make_client_error("RequestLimitExceeded")

    with pytest.raises(ProviderError, match="RequestLimitExceeded"):
        get_address(mock_ctx, "eipalloc-abc")


def test_associate_address_disallows_reassociation(mock_ctx):
    ec2 = mock_ctx.client("ec2")
    ec2.associate_address.return_value = {"AssociationId": "eipassoc-1"}

    assert associate_address(mock_ctx, "eipalloc-abc", "i-abc") == "eipassoc-1"
    ec2.associate_address.assert_called_once_with(
        AllocationId="eipalloc-abc", InstanceId="i-abc", AllowReassociation=False,
    )
