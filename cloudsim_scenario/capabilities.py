"""
Capability contracts for pluggable simulation strategies.

Scenario files name strategies by alias (``TimeShared``, ``Simple``, ...).
The policy resolver turns an alias into an instance of one of these
contracts; anything subclassing the right contract can be plugged in.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .entities import Datacenter, Host, Vm, Workload


class ResourceProvisioner(ABC):
    """Tracks how much of one host resource (RAM, bandwidth, ...) each VM holds."""

    def __init__(self, capacity: float = 0):
        self.capacity = capacity
        self._allocations: Dict[int, float] = {}

    @property
    def allocated(self) -> float:
        return sum(self._allocations.values())

    @property
    def available(self) -> float:
        return self.capacity - self.allocated

    def allocation_for(self, vm_id: int) -> float:
        return self._allocations.get(vm_id, 0)

    @abstractmethod
    def allocate(self, vm_id: int, amount: float) -> bool:
        """Reserve ``amount`` for a VM, replacing any previous reservation."""

    def deallocate(self, vm_id: int) -> float:
        """Release a VM's reservation and return the released amount."""
        return self._allocations.pop(vm_id, 0)


class PeProvisioner(ResourceProvisioner):
    """Provisioner for the MIPS capacity of a single processing element."""


class VmScheduler(ABC):
    """Shares a host's processing elements among its VMs."""

    def __init__(self):
        self.host: Optional['Host'] = None

    def attach(self, host: 'Host') -> None:
        self.host = host

    @abstractmethod
    def is_suitable(self, vm: 'Vm') -> bool:
        """Return True if the host's PEs can take the VM."""

    @abstractmethod
    def allocate_pes(self, vm: 'Vm') -> bool:
        """Reserve PE capacity for a VM."""

    @abstractmethod
    def deallocate_pes(self, vm: 'Vm') -> None:
        """Release the PE capacity held by a VM."""


class VmAllocationPolicy(ABC):
    """Chooses the host of a datacenter that will run a VM."""

    def __init__(self):
        self.datacenter: Optional['Datacenter'] = None

    def attach(self, datacenter: 'Datacenter') -> None:
        self.datacenter = datacenter

    @property
    def hosts(self) -> List['Host']:
        return self.datacenter.hosts if self.datacenter is not None else []

    @abstractmethod
    def find_host(self, vm: 'Vm') -> Optional['Host']:
        """Return a suitable host for the VM, or None."""

    def allocate(self, vm: 'Vm') -> Optional['Host']:
        """Place a VM on the host chosen by find_host."""
        host = self.find_host(vm)
        if host is None or not host.place(vm):
            return None
        return host


class WorkloadScheduler(ABC):
    """Shares a VM's processing elements among its workloads."""

    def __init__(self):
        self.vm: Optional['Vm'] = None
        self.executing: List['Workload'] = []
        self.waiting: List['Workload'] = []

    def attach(self, vm: 'Vm') -> None:
        self.vm = vm

    @abstractmethod
    def submit(self, workload: 'Workload') -> bool:
        """Accept a workload; return True if it starts executing at once."""

    def finish(self, workload: 'Workload') -> None:
        """Remove a finished workload and start any waiting ones that now fit."""
        self.executing.remove(workload)
        for waiting in list(self.waiting):
            if self._can_start(waiting):
                self.waiting.remove(waiting)
                self.executing.append(waiting)

    def _can_start(self, workload: 'Workload') -> bool:
        return True


class UtilizationModel(ABC):
    """Fraction of a requested resource a workload uses over time."""

    @abstractmethod
    def utilization(self, time: float = 0.0) -> float:
        """Return utilization in [0, 1] at simulation time ``time``."""
