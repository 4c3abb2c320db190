"""
Stock resource provisioners.

Resolved from aliases: ``ResourceProvisioner<alias>`` for RAM and bandwidth,
``PeProvisioner<alias>`` for processing elements.
"""

from .capabilities import ResourceProvisioner, PeProvisioner


class ResourceProvisionerSimple(ResourceProvisioner):
    """Grants a reservation only when the remaining capacity covers it."""

    def allocate(self, vm_id: int, amount: float) -> bool:
        growth = amount - self.allocation_for(vm_id)
        if growth > self.available:
            return False
        self._allocations[vm_id] = amount
        return True


class PeProvisionerSimple(PeProvisioner, ResourceProvisionerSimple):
    """Simple provisioner for the MIPS of one PE."""
