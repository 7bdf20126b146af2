from eipctl.aws.context import AwsContext
from eipctl.errors import provider_call


def create_load_balancer(
    ctx: AwsContext, name: str, subnet_ids: list[str],
    security_group_ids: list[str] | None = None, internal: bool = False,
) -> dict:
    """Create an application load balancer. Returns {"arn", "dns_name"}."""
    elbv2 = ctx.client("elbv2")
    kwargs = {
        "Name": name,
        "Subnets": subnet_ids,
        "Scheme": "internal" if internal else "internet-facing",
        "Type": "application",
        "Tags": [{"Key": "Name", "Value": name}],
    }
    if security_group_ids:
        kwargs["SecurityGroups"] = security_group_ids
    response = provider_call(f"load balancer {name}", "CreateLoadBalancer", elbv2.create_load_balancer, **kwargs)
    lb = response["LoadBalancers"][0]
    return {"arn": lb["LoadBalancerArn"], "dns_name": lb.get("DNSName", "")}


def create_target_group(
    ctx: AwsContext, name: str, vpc_id: str, port: int = 80,
    protocol: str = "HTTP", health_check_path: str = "/",
) -> str:
    elbv2 = ctx.client("elbv2")
    response = provider_call(
        f"target group {name}", "CreateTargetGroup", elbv2.create_target_group,
        Name=name, Protocol=protocol, Port=port, VpcId=vpc_id,
        TargetType="instance",
        HealthCheckProtocol=protocol,
        HealthCheckPath=health_check_path,
        Tags=[{"Key": "Name", "Value": name}],
    )
    return response["TargetGroups"][0]["TargetGroupArn"]


def register_targets(ctx: AwsContext, target_group_arn: str, instance_ids: list[str]) -> None:
    elbv2 = ctx.client("elbv2")
    provider_call(
        f"target group {target_group_arn}", "RegisterTargets", elbv2.register_targets,
        TargetGroupArn=target_group_arn,
        Targets=[{"Id": instance_id} for instance_id in instance_ids],
    )


def create_listener(
    ctx: AwsContext, load_balancer_arn: str, target_group_arn: str,
    port: int = 80, protocol: str = "HTTP",
) -> str:
    """Forward all traffic on a port to one target group. Returns listener ARN."""
    elbv2 = ctx.client("elbv2")
    response = provider_call(
        f"load balancer {load_balancer_arn}", "CreateListener", elbv2.create_listener,
        LoadBalancerArn=load_balancer_arn, Protocol=protocol, Port=port,
        DefaultActions=[{"Type": "forward", "TargetGroupArn": target_group_arn}],
    )
    return response["Listeners"][0]["ListenerArn"]
