"""Exchange the Elastic IPs of two instances, typically staging and production.

Each instance's role is named by a tag on the address it holds (``stagingEip``
/ ``prodEip``). A swap hands each instance the address live on the other, then
moves the tags along so they keep naming the address on each instance. That
makes the swap repeatable: swapping twice restores the original assignment.

Before any change the tags are compared with what is live on each instance.
If they disagree the tags have drifted from reality and the swap refuses to
start unless ``allow_drift`` is set. A forced swap still exchanges the live
addresses, and only retags when the tagged addresses are the ones exchanged.

The swap is not atomic. Each detach and attach is a separate EC2 call; if one
fails, SwapError carries a SwapResult that says exactly which instance lost
or gained an address. Nothing is rolled back.
"""

from eipctl.aws.ec2 import find_instance_by_tag
from eipctl.aws.eip import find_address_by_instance, find_address_by_tag, tag_address
from eipctl.config import PRODUCTION_EIP_TAG, STAGING_EIP_TAG
from eipctl.control.associations import attach, detach
from eipctl.control.base import Controller
from eipctl.control.records import FloatingIP, SwapResult, SwapSide
from eipctl.errors import LookupNotFound, SwapError, TagDriftError


def _drift_message(instance_name: str, tag: str, tagged: FloatingIP, live: FloatingIP | None) -> str | None:
    if live is not None and live.allocation_id == tagged.allocation_id:
        return None
    holding = live.allocation_id if live else "no Elastic IP"
    return f"{instance_name} holds {holding} but {tag} is {tagged.allocation_id}"


class IPSwapper(Controller):

    def _require_address(self, tag: str) -> FloatingIP:
        address = find_address_by_tag(self.ctx, tag)
        if address is None:
            raise LookupNotFound("Elastic IP", tag)
        return address

    def swap_floating_ips(
        self, name_a: str, name_b: str,
        tag_a: str = STAGING_EIP_TAG, tag_b: str = PRODUCTION_EIP_TAG,
        allow_drift: bool = False,
    ) -> SwapResult:
        """Give name_a the address live on name_b and the reverse, then swap tag_a and tag_b."""
        if name_a == name_b:
            raise ValueError("Cannot swap an instance with itself")

        self._notify("Resolving instances")
        instance_a = find_instance_by_tag(self.ctx, name_a)
        instance_b = find_instance_by_tag(self.ctx, name_b)
        self._debug_callback(f"{name_a} -> {instance_a.instance_id}, {name_b} -> {instance_b.instance_id}")

        self._notify("Resolving Elastic IPs")
        eip_a = self._require_address(tag_a)
        eip_b = self._require_address(tag_b)
        self._debug_callback(f"{tag_a} -> {eip_a.allocation_id}, {tag_b} -> {eip_b.allocation_id}")

        live_a = find_address_by_instance(self.ctx, instance_a.instance_id)
        live_b = find_address_by_instance(self.ctx, instance_b.instance_id)
        drift = [
            m for m in (
                _drift_message(name_a, tag_a, eip_a, live_a),
                _drift_message(name_b, tag_b, eip_b, live_b),
            ) if m
        ]
        if drift:
            if not allow_drift:
                raise TagDriftError(drift)
            for message in drift:
                self._notify(f"Proceeding despite drift: {message}")

        # An instance holding nothing gives away the address its tag names.
        target_a = (live_b or eip_b).allocation_id
        target_b = (live_a or eip_a).allocation_id
        if target_a == target_b:
            raise TagDriftError(drift + [f"both instances would receive {target_a}"])

        result = SwapResult(
            a=SwapSide(name_a, instance_a.instance_id, target_a),
            b=SwapSide(name_b, instance_b.instance_id, target_b),
            drift=drift,
        )
        live = {instance_a.instance_id: live_a, instance_b.instance_id: live_b}
        try:
            for side in result.sides:
                self._notify(f"Detaching Elastic IP from {side.instance_name}")
                detached = detach(self.ctx, side.instance_id, current=live[side.instance_id])
                side.detached = True
                if detached is not None:
                    side.detached_allocation_id = detached.allocation_id
                    self._debug_callback(f"Detached {detached.allocation_id} from {side.instance_id}")
            for side in result.sides:
                self._notify(f"Attaching {side.target_allocation_id} to {side.instance_name}")
                association = attach(self.ctx, side.instance_id, side.target_allocation_id)
                side.association_id = association.association_id
        except Exception as e:
            raise SwapError(
                f"Swap of {name_a} and {name_b} stopped part way ({e}). State: {result.describe()}",
                result,
            ) from e
        except BaseException as e:
            # Interrupted: keep the interrupt but let the caller report partial state.
            e.swap_result = result
            raise

        if {target_a, target_b} != {eip_a.allocation_id, eip_b.allocation_id}:
            self._notify(f"Tags left unchanged: {tag_a} and {tag_b} do not name the swapped addresses")
            return result
        try:
            self._notify(f"Updating tags {tag_a} and {tag_b}")
            tag_address(self.ctx, target_a, tag_a)
            tag_address(self.ctx, target_b, tag_b)
        except Exception as e:
            raise SwapError(
                f"Swapped {name_a} and {name_b} but could not update tags ({e}). "
                f"Set Name={tag_a} on {target_a} and Name={tag_b} on {target_b}",
                result,
            ) from e
        result.retagged = True
        return result
