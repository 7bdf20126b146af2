from eipctl.aws.context import AwsContext
from eipctl.aws.eip import associate_address, disassociate_address, find_address_by_instance
from eipctl.control.records import Association, FloatingIP
from eipctl.errors import AlreadyAssociatedError


def detach(ctx: AwsContext, instance_id: str, current: FloatingIP | None = None) -> FloatingIP | None:
    """Remove whatever Elastic IP is live on an instance. Returns it, or None if there was none.

    Pass current when the live address was already resolved, to detach exactly that one.
    """
    if current is None:
        current = find_address_by_instance(ctx, instance_id)
    if current is None:
        return None
    disassociate_address(ctx, current.allocation_id)
    return current


def attach(ctx: AwsContext, instance_id: str, allocation_id: str) -> Association:
    """Associate an Elastic IP with an instance that must not already hold one."""
    current = find_address_by_instance(ctx, instance_id)
    if current is not None:
        raise AlreadyAssociatedError(instance_id, current.allocation_id)
    association_id = associate_address(ctx, allocation_id, instance_id)
    return Association(association_id=association_id, allocation_id=allocation_id, instance_id=instance_id)
