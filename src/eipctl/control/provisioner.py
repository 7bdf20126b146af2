from dataclasses import replace

from eipctl.aws.ami import get_latest_ubuntu_ami
from eipctl.aws.ec2 import (
    DEFAULT_INSTANCE_TYPE,
    launch_instance,
    terminate_instance,
    wait_for_instance_running,
)
from eipctl.aws.eip import (
    allocate_address,
    disassociate_address,
    find_address_by_tag,
    find_managed_addresses,
    release_address,
)
from eipctl.control.associations import attach
from eipctl.control.base import Controller
from eipctl.control.records import FloatingIP, Instance
from eipctl.errors import EipctlError, ProvisioningError


def eip_name_for(instance_name: str) -> str:
    return f"{instance_name}-eip"


class ElasticIPProvisioner(Controller):

    def ensure_floating_ip(self, name: str) -> FloatingIP:
        """Return the Elastic IP tagged with name, allocating it only if none exists."""
        address, _ = self._ensure(name)
        return address

    def _ensure(self, name: str) -> tuple[FloatingIP, bool]:
        if not name:
            raise ValueError("Elastic IP name must not be empty")
        self._notify(f"Looking up Elastic IP {name}")
        existing = find_address_by_tag(self.ctx, name)
        if existing is not None:
            self._debug_callback(f"Found {existing.allocation_id} ({existing.public_ip}) tagged {name}")
            return existing, False

        self._notify(f"Allocating Elastic IP {name}")
        created = allocate_address(self.ctx, name)
        self._debug_callback(f"Allocated {created.allocation_id} ({created.public_ip}) tagged {name}")
        return created, True

    def provision_instance_with_floating_ip(
        self, name: str, image_id: str | None = None,
        instance_type: str = DEFAULT_INSTANCE_TYPE, rollback: bool = False,
        subnet_id: str | None = None, security_group_ids: list[str] | None = None,
        key_name: str | None = None,
    ) -> tuple[Instance, FloatingIP]:
        """Ensure <name>-eip, launch an instance tagged name, and associate the two.

        Failures after the address exists raise ProvisioningError describing what
        was left behind. With rollback=True, an address allocated by this call and
        an instance launched by this call are cleaned up first.
        """
        if not name:
            raise ValueError("Instance name must not be empty")
        address, allocated = self._ensure(eip_name_for(name))

        instance_id = ""
        try:
            if not image_id:
                self._notify("Resolving latest Ubuntu 22.04 AMI")
                image_id = get_latest_ubuntu_ami(self.ctx)
            self._notify(f"Launching instance {name}")
            instance = launch_instance(
                self.ctx, name, image_id, instance_type,
                subnet_id=subnet_id, security_group_ids=security_group_ids, key_name=key_name,
            )
            instance_id = instance.instance_id
            self._debug_callback(f"Launched {instance_id} ({image_id}, {instance_type})")

            self._notify("Waiting for instance to be running")
            wait_for_instance_running(self.ctx, instance_id)

            self._notify(f"Associating Elastic IP {address.public_ip}")
            association = attach(self.ctx, instance_id, address.allocation_id)
        except BaseException as e:
            rolled_back = False
            if rollback:
                rolled_back = self._rollback(address, allocated, instance_id)
            error = ProvisioningError(
                f"Provisioning {name} failed: {str(e) or type(e).__name__}",
                allocation_id=address.allocation_id, allocated=allocated,
                instance_id=instance_id, rolled_back=rolled_back,
            )
            if not isinstance(e, Exception):
                e.provisioning_error = error
                raise
            raise error from e

        address = replace(address, association_id=association.association_id, instance_id=instance_id)
        instance = replace(instance, state="running", public_ip=address.public_ip)
        return instance, address

    def _rollback(self, address: FloatingIP, allocated: bool, instance_id: str) -> bool:
        """Undo what this call created. Returns False if any cleanup step failed."""
        clean = True
        if instance_id:
            self._notify(f"Rolling back: terminating {instance_id}")
            try:
                terminate_instance(self.ctx, instance_id)
            except EipctlError as e:
                self._notify(f"Rollback could not terminate {instance_id}: {e}")
                clean = False
        if allocated:
            self._notify(f"Rolling back: releasing {address.allocation_id}")
            try:
                self.release_floating_ip(address.allocation_id)
            except EipctlError as e:
                self._notify(f"Rollback could not release {address.allocation_id}: {e}")
                clean = False
        return clean

    def list_floating_ips(self) -> list[FloatingIP]:
        """List Elastic IPs allocated by eipctl in this region."""
        return find_managed_addresses(self.ctx)

    def release_floating_ip(self, allocation_id: str) -> None:
        """Detach (if needed) and release a single Elastic IP."""
        disassociate_address(self.ctx, allocation_id)
        release_address(self.ctx, allocation_id)
