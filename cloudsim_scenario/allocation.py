"""
Stock VM allocation policies (``VmAllocationPolicy<alias>``).
"""

from typing import List, Optional, TYPE_CHECKING

from .capabilities import VmAllocationPolicy

if TYPE_CHECKING:
    from .entities import Host, Vm


class _CandidatePolicy(VmAllocationPolicy):

    def _candidates(self, vm: 'Vm') -> List['Host']:
        return [h for h in self.hosts if h.is_suitable(vm)]


class VmAllocationPolicySimple(_CandidatePolicy):
    """Places a VM on the suitable host with the most free PEs (worst fit)."""

    def find_host(self, vm: 'Vm') -> Optional['Host']:
        candidates = self._candidates(vm)
        if not candidates:
            return None
        return max(candidates, key=lambda h: h.free_pes)


class VmAllocationPolicyFirstFit(_CandidatePolicy):
    """Places a VM on the first suitable host, in datacenter order."""

    def find_host(self, vm: 'Vm') -> Optional['Host']:
        candidates = self._candidates(vm)
        return candidates[0] if candidates else None


class VmAllocationPolicyBestFit(_CandidatePolicy):
    """Places a VM on the suitable host with the fewest free PEs."""

    def find_host(self, vm: 'Vm') -> Optional['Host']:
        candidates = self._candidates(vm)
        if not candidates:
            return None
        return min(candidates, key=lambda h: h.free_pes)
