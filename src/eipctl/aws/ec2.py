from eipctl.aws.context import AwsContext
from eipctl.control.records import Instance
from eipctl.errors import LookupAmbiguous, LookupNotFound, provider_call


DEFAULT_INSTANCE_TYPE = "t3.medium"

INACTIVE_STATES = ("terminated", "shutting-down")


def _to_instance(instance: dict) -> Instance:
    tags = {t["Key"]: t["Value"] for t in instance.get("Tags", [])}
    return Instance(
        name=tags.get("Name", ""),
        instance_id=instance["InstanceId"],
        image_id=instance.get("ImageId", ""),
        instance_type=instance.get("InstanceType", ""),
        state=instance.get("State", {}).get("Name", ""),
        public_ip=instance.get("PublicIpAddress"),
    )


def launch_instance(
    ctx: AwsContext, name: str, image_id: str, instance_type: str = DEFAULT_INSTANCE_TYPE,
    subnet_id: str | None = None, security_group_ids: list[str] | None = None,
    key_name: str | None = None, tags: dict[str, str] | None = None,
) -> Instance:
    ec2 = ctx.client("ec2")
    instance_tags = [{"Key": "Name", "Value": name}]
    for key, value in (tags or {}).items():
        instance_tags.append({"Key": key, "Value": value})
    kwargs = {
        "ImageId": image_id, "InstanceType": instance_type,
        "MinCount": 1, "MaxCount": 1,
        "TagSpecifications": [{"ResourceType": "instance", "Tags": instance_tags}],
    }
    if subnet_id:
        kwargs["SubnetId"] = subnet_id
    if security_group_ids:
        kwargs["SecurityGroupIds"] = security_group_ids
    if key_name:
        kwargs["KeyName"] = key_name
    response = provider_call(f"instance {name}", "RunInstances", ec2.run_instances, **kwargs)
    return _to_instance(response["Instances"][0])


def find_instances_by_tag(ctx: AwsContext, name: str) -> list[Instance]:
    """Find all live EC2 instances tagged Name=<name>."""
    ec2 = ctx.client("ec2")
    paginator = ec2.get_paginator("describe_instances")
    pages = provider_call(
        f"instance {name}", "DescribeInstances",
        lambda: list(paginator.paginate(Filters=[{"Name": "tag:Name", "Values": [name]}])),
    )
    results = []
    for page in pages:
        for reservation in page["Reservations"]:
            for instance in reservation["Instances"]:
                if instance["State"]["Name"] in INACTIVE_STATES:
                    continue
                results.append(_to_instance(instance))
    return results


def find_instance_by_tag(ctx: AwsContext, name: str) -> Instance:
    """Resolve exactly one live instance by Name tag."""
    matches = find_instances_by_tag(ctx, name)
    if not matches:
        raise LookupNotFound("instance", name)
    if len(matches) > 1:
        raise LookupAmbiguous("instance", name, [i.instance_id for i in matches])
    return matches[0]


def get_instance_public_ip(ctx: AwsContext, instance_id: str) -> str | None:
    ec2 = ctx.client("ec2")
    response = provider_call(
        f"instance {instance_id}", "DescribeInstances", ec2.describe_instances,
        InstanceIds=[instance_id],
    )
    reservations = response.get("Reservations", [])
    if not reservations or not reservations[0].get("Instances"):
        return None
    return reservations[0]["Instances"][0].get("PublicIpAddress")


def wait_for_instance_running(ctx: AwsContext, instance_id: str) -> None:
    ec2 = ctx.client("ec2")
    waiter = ec2.get_waiter("instance_running")
    provider_call(f"instance {instance_id}", "WaitInstanceRunning", waiter.wait, InstanceIds=[instance_id])


def terminate_instance(ctx: AwsContext, instance_id: str) -> None:
    ec2 = ctx.client("ec2")
    provider_call(
        f"instance {instance_id}", "TerminateInstances", ec2.terminate_instances,
        InstanceIds=[instance_id],
    )
