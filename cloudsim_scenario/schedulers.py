"""
Stock VM schedulers (``VmScheduler<alias>``) and workload schedulers
(``CloudletScheduler<alias>``).
"""

from abc import abstractmethod
from typing import Dict, List, TYPE_CHECKING

from .capabilities import VmScheduler, WorkloadScheduler

if TYPE_CHECKING:
    from .entities import Pe, Vm, Workload


class _PeVmScheduler(VmScheduler):
    """Reserves ``vm.mips`` on ``vm.pes`` distinct PEs chosen by _candidates."""

    def __init__(self):
        super().__init__()
        self._pes_by_vm: Dict[int, List['Pe']] = {}

    @abstractmethod
    def _candidates(self, vm: 'Vm') -> List['Pe']:
        """PEs able to take the VM, in preference order."""

    def is_suitable(self, vm: 'Vm') -> bool:
        return len(self._candidates(vm)) >= vm.pes

    def allocate_pes(self, vm: 'Vm') -> bool:
        candidates = self._candidates(vm)
        if len(candidates) < vm.pes:
            return False
        chosen = candidates[:vm.pes]
        for pe in chosen:
            pe.provisioner.allocate(vm.id, vm.mips)
        self._pes_by_vm[vm.id] = chosen
        return True

    def deallocate_pes(self, vm: 'Vm') -> None:
        for pe in self._pes_by_vm.pop(vm.id, []):
            pe.provisioner.deallocate(vm.id)


class VmSchedulerSpaceShared(_PeVmScheduler):
    """Each PE is given exclusively to one VM."""

    def _candidates(self, vm: 'Vm') -> List['Pe']:
        return [
            pe for pe in self.host.pes
            if pe.provisioner.allocated == 0 and pe.mips >= vm.mips
        ]


class VmSchedulerTimeShared(_PeVmScheduler):
    """PEs are shared by VMs while they have MIPS left, least loaded first."""

    def _candidates(self, vm: 'Vm') -> List['Pe']:
        free = [pe for pe in self.host.pes if pe.provisioner.available >= vm.mips]
        return sorted(free, key=lambda pe: pe.provisioner.available, reverse=True)


class CloudletSchedulerTimeShared(WorkloadScheduler):
    """Every submitted workload executes at once, sharing the VM's PEs."""

    def submit(self, workload: 'Workload') -> bool:
        self.executing.append(workload)
        return True


class CloudletSchedulerSpaceShared(WorkloadScheduler):
    """Workloads run only while free PEs remain; the rest wait in FIFO order."""

    def _used_pes(self) -> int:
        return sum(w.pes for w in self.executing)

    def _can_start(self, workload: 'Workload') -> bool:
        capacity = self.vm.pes if self.vm is not None else 0
        return self._used_pes() + workload.pes <= capacity

    def submit(self, workload: 'Workload') -> bool:
        if not self.waiting and self._can_start(workload):
            self.executing.append(workload)
            return True
        self.waiting.append(workload)
        return False
