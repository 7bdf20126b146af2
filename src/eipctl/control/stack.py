from dataclasses import dataclass, field

from eipctl.aws.ami import get_latest_ubuntu_ami
from eipctl.aws.ec2 import (
    DEFAULT_INSTANCE_TYPE,
    get_instance_public_ip,
    launch_instance,
    wait_for_instance_running,
)
from eipctl.aws.elb import create_listener, create_load_balancer, create_target_group, register_targets
from eipctl.aws.rds import create_database, get_database_endpoint, wait_for_database_available
from eipctl.control.base import Controller
from eipctl.control.records import StackOutputs


@dataclass
class DatabaseConfig:
    identifier: str
    password: str
    username: str = "eipctl"
    engine: str = "postgres"
    instance_class: str = "db.t3.micro"
    allocated_storage: int = 20
    db_name: str = ""
    security_group_ids: list[str] = field(default_factory=list)


@dataclass
class LoadBalancerConfig:
    name: str
    vpc_id: str
    subnet_ids: list[str]
    security_group_ids: list[str] = field(default_factory=list)
    listener_port: int = 80
    target_port: int = 80
    health_check_path: str = "/"

    @property
    def target_group_name(self) -> str:
        return f"{self.name}-tg"


@dataclass
class StackConfig:
    instance_name: str = "my-ubuntu-instance"
    image_id: str = ""
    instance_type: str = DEFAULT_INSTANCE_TYPE
    subnet_id: str = ""
    security_group_ids: list[str] = field(default_factory=list)
    key_name: str = ""
    database: DatabaseConfig | None = None
    load_balancer: LoadBalancerConfig | None = None


class StackDeployer(Controller):

    def deploy_stack(self, config: StackConfig) -> StackOutputs:
        """Create the instance, then the optional database and load balancer, and export outputs."""
        image_id = config.image_id
        if not image_id:
            self._notify("Resolving latest Ubuntu 22.04 AMI")
            image_id = get_latest_ubuntu_ami(self.ctx)

        self._notify(f"Launching instance {config.instance_name}")
        instance = launch_instance(
            self.ctx, config.instance_name, image_id, config.instance_type,
            subnet_id=config.subnet_id or None,
            security_group_ids=config.security_group_ids or None,
            key_name=config.key_name or None,
        )
        self._notify("Waiting for instance to be running")
        wait_for_instance_running(self.ctx, instance.instance_id)
        outputs = StackOutputs(
            instance_id=instance.instance_id,
            public_ip=get_instance_public_ip(self.ctx, instance.instance_id),
        )

        if config.database:
            db = config.database
            self._notify(f"Creating database {db.identifier}")
            created = create_database(
                self.ctx, db.identifier, db.username, db.password,
                engine=db.engine, instance_class=db.instance_class,
                allocated_storage=db.allocated_storage, db_name=db.db_name,
                security_group_ids=db.security_group_ids or None,
            )
            self._debug_callback(f"Created database {created['arn']}")

            self._notify(f"Waiting for database {db.identifier} to be available")
            wait_for_database_available(self.ctx, db.identifier)
            outputs.database_endpoint = get_database_endpoint(self.ctx, db.identifier)

        if config.load_balancer:
            lb = config.load_balancer
            self._notify(f"Creating load balancer {lb.name}")
            created_lb = create_load_balancer(
                self.ctx, lb.name, lb.subnet_ids, security_group_ids=lb.security_group_ids or None,
            )
            outputs.load_balancer_dns = created_lb["dns_name"]

            self._notify(f"Creating target group {lb.target_group_name}")
            outputs.target_group_arn = create_target_group(
                self.ctx, lb.target_group_name, lb.vpc_id,
                port=lb.target_port, health_check_path=lb.health_check_path,
            )
            self._notify(f"Registering {instance.instance_id} with target group")
            register_targets(self.ctx, outputs.target_group_arn, [instance.instance_id])

            self._notify(f"Creating listener on port {lb.listener_port}")
            outputs.listener_arn = create_listener(
                self.ctx, created_lb["arn"], outputs.target_group_arn, port=lb.listener_port,
            )

        return outputs
