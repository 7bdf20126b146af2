from dataclasses import dataclass, field


@dataclass
class FloatingIP:
    name: str
    allocation_id: str
    public_ip: str
    association_id: str = ""
    instance_id: str = ""

    @property
    def associated(self) -> bool:
        return bool(self.association_id)


@dataclass
class Instance:
    name: str
    instance_id: str
    image_id: str = ""
    instance_type: str = ""
    state: str = ""
    public_ip: str | None = None


@dataclass(frozen=True)
class Association:
    association_id: str
    allocation_id: str
    instance_id: str


@dataclass
class SwapSide:
    """One instance's half of a swap: what it gave up and what it received."""

    instance_name: str
    instance_id: str
    target_allocation_id: str
    detached: bool = False
    detached_allocation_id: str = ""
    association_id: str = ""

    @property
    def attached(self) -> bool:
        return bool(self.association_id)

    def describe(self) -> str:
        if self.attached:
            return f"{self.instance_name}: attached {self.target_allocation_id}"
        if self.detached:
            return f"{self.instance_name}: detached, no Elastic IP attached"
        return f"{self.instance_name}: unchanged"


@dataclass
class SwapResult:
    a: SwapSide
    b: SwapSide
    drift: list[str] = field(default_factory=list)
    retagged: bool = False

    @property
    def sides(self) -> list[SwapSide]:
        return [self.a, self.b]

    @property
    def complete(self) -> bool:
        return self.a.attached and self.b.attached

    def describe(self) -> str:
        return "; ".join(side.describe() for side in self.sides)


@dataclass
class StackOutputs:
    instance_id: str
    public_ip: str | None = None
    database_endpoint: str = ""
    load_balancer_dns: str = ""
    target_group_arn: str = ""
    listener_arn: str = ""

    def exports(self) -> dict[str, str]:
        """Non-empty outputs keyed by export name."""
        values = {
            "instanceId": self.instance_id,
            "publicIp": self.public_ip or "",
            "databaseEndpoint": self.database_endpoint,
            "loadBalancerDns": self.load_balancer_dns,
            "targetGroupArn": self.target_group_arn,
            "listenerArn": self.listener_arn,
        }
        return {k: v for k, v in values.items() if v}
