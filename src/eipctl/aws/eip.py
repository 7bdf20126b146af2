from botocore.exceptions import BotoCoreError, ClientError

from eipctl.aws.context import AwsContext
from eipctl.control.records import FloatingIP
from eipctl.errors import LookupAmbiguous, ProviderError, is_client_error, provider_call


MANAGED_TAG = "eipctl:managed"


def _to_floating_ip(addr: dict) -> FloatingIP:
    tags = {t["Key"]: t["Value"] for t in addr.get("Tags", [])}
    return FloatingIP(
        name=tags.get("Name", ""),
        allocation_id=addr["AllocationId"],
        public_ip=addr.get("PublicIp", ""),
        association_id=addr.get("AssociationId") or "",
        instance_id=addr.get("InstanceId") or "",
    )


def allocate_address(ctx: AwsContext, name: str) -> FloatingIP:
    """Allocate a VPC Elastic IP tagged Name=<name>."""
    ec2 = ctx.client("ec2")
    response = provider_call(
        f"Elastic IP {name}", "AllocateAddress", ec2.allocate_address,
        Domain="vpc",
        TagSpecifications=[{
            "ResourceType": "elastic-ip",
            "Tags": [
                {"Key": "Name", "Value": name},
                {"Key": MANAGED_TAG, "Value": "true"},
            ],
        }],
    )
    return FloatingIP(name=name, allocation_id=response["AllocationId"], public_ip=response["PublicIp"])


def find_address_by_tag(ctx: AwsContext, name: str) -> FloatingIP | None:
    """Return the Elastic IP tagged Name=<name>, or None if there is none.

    Several matches raise LookupAmbiguous. Any API failure raises ProviderError.
    """
    ec2 = ctx.client("ec2")
    response = provider_call(
        f"Elastic IP {name}", "DescribeAddresses", ec2.describe_addresses,
        Filters=[{"Name": "tag:Name", "Values": [name]}],
    )
    addresses = response.get("Addresses", [])
    if not addresses:
        return None
    if len(addresses) > 1:
        raise LookupAmbiguous("Elastic IP", name, [a["AllocationId"] for a in addresses])
    return _to_floating_ip(addresses[0])


def find_address_by_instance(ctx: AwsContext, instance_id: str) -> FloatingIP | None:
    """Return the Elastic IP currently associated with an instance, if any."""
    ec2 = ctx.client("ec2")
    response = provider_call(
        f"instance {instance_id}", "DescribeAddresses", ec2.describe_addresses,
        Filters=[{"Name": "instance-id", "Values": [instance_id]}],
    )
    addresses = response.get("Addresses", [])
    if not addresses:
        return None
    if len(addresses) > 1:
        raise LookupAmbiguous("Elastic IP on instance", instance_id, [a["AllocationId"] for a in addresses])
    return _to_floating_ip(addresses[0])


def get_address(ctx: AwsContext, allocation_id: str) -> FloatingIP | None:
    ec2 = ctx.client("ec2")
    try:
        response = ec2.describe_addresses(AllocationIds=[allocation_id])
    except ClientError as e:
        if is_client_error(e, "InvalidAllocationID.NotFound"):
            return None
        raise ProviderError(f"Elastic IP {allocation_id}", "DescribeAddresses", e) from e
    except BotoCoreError as e:
        raise ProviderError(f"Elastic IP {allocation_id}", "DescribeAddresses", e) from e
    addresses = response.get("Addresses", [])
    if not addresses:
        return None
    return _to_floating_ip(addresses[0])


def associate_address(ctx: AwsContext, allocation_id: str, instance_id: str) -> str:
    """Associate an EIP with an EC2 instance. Returns association_id.

    Reassociation is disabled: an address attached elsewhere is rejected by EC2.
    """
    ec2 = ctx.client("ec2")
    response = provider_call(
        f"Elastic IP {allocation_id}", "AssociateAddress", ec2.associate_address,
        AllocationId=allocation_id,
        InstanceId=instance_id,
        AllowReassociation=False,
    )
    return response["AssociationId"]


def disassociate_address(ctx: AwsContext, allocation_id: str) -> None:
    """Disassociate an EIP. No-op if not currently associated."""
    address = get_address(ctx, allocation_id)
    if address is None or not address.association_id:
        return
    ec2 = ctx.client("ec2")
    provider_call(
        f"Elastic IP {allocation_id}", "DisassociateAddress", ec2.disassociate_address,
        AssociationId=address.association_id,
    )


def release_address(ctx: AwsContext, allocation_id: str) -> None:
    """Permanently release (delete) an Elastic IP."""
    ec2 = ctx.client("ec2")
    provider_call(
        f"Elastic IP {allocation_id}", "ReleaseAddress", ec2.release_address,
        AllocationId=allocation_id,
    )


def find_managed_addresses(ctx: AwsContext) -> list[FloatingIP]:
    """Find all EIPs allocated by eipctl."""
    ec2 = ctx.client("ec2")
    response = provider_call(
        "managed Elastic IPs", "DescribeAddresses", ec2.describe_addresses,
        Filters=[{"Name": "tag-key", "Values": [MANAGED_TAG]}],
    )
    return [_to_floating_ip(a) for a in response.get("Addresses", [])]


def tag_address(ctx: AwsContext, allocation_id: str, name: str) -> None:
    """Set the Name tag of an Elastic IP, replacing any previous value."""
    ec2 = ctx.client("ec2")
    provider_call(
        f"Elastic IP {allocation_id}", "CreateTags", ec2.create_tags,
        Resources=[allocation_id],
        Tags=[{"Key": "Name", "Value": name}],
    )
