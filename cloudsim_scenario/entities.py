"""
Concrete simulation entities produced by graph assembly.

These are the objects handed to the simulation engine. Entities compare by
identity, so brokers can key the VM and workload maps.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .capabilities import (
    PeProvisioner, ResourceProvisioner, UtilizationModel,
    VmAllocationPolicy, VmScheduler, WorkloadScheduler,
)


@dataclass(eq=False)
class Pe:
    """A processing element (core) of a host."""
    id: int
    mips: float
    provisioner: PeProvisioner


@dataclass(eq=False)
class Broker:
    """Acts on behalf of one customer: owns its VMs and workloads."""
    id: int
    name: str


@dataclass(eq=False)
class Vm:
    """A virtual machine bound to its broker."""
    id: int
    broker: Broker
    mips: float
    pes: int
    ram: int
    bw: int
    size: int
    workload_scheduler: WorkloadScheduler
    host: Optional['Host'] = field(default=None, repr=False)  # Set when a host places the VM

    def __post_init__(self):
        self.workload_scheduler.attach(self)

    @property
    def total_mips(self) -> float:
        return self.mips * self.pes


@dataclass(eq=False)
class Workload:
    """A unit of work (cloudlet) bound to its broker."""
    id: int
    broker: Broker
    length: int
    pes: int
    file_size: int
    output_size: int
    utilization_model_cpu: UtilizationModel
    utilization_model_ram: UtilizationModel
    utilization_model_bw: UtilizationModel
    vm: Optional[Vm] = None  # Set by the engine when the workload is bound


@dataclass(eq=False)
class Host:
    """A physical machine with its PEs, provisioners and VM scheduler."""
    id: int
    ram: int
    bw: int
    storage: int
    pes: List[Pe]
    ram_provisioner: ResourceProvisioner
    bw_provisioner: ResourceProvisioner
    vm_scheduler: VmScheduler
    datacenter: Optional['Datacenter'] = field(default=None, repr=False)

    def __post_init__(self):
        self.vm_scheduler.attach(self)

    @property
    def total_mips(self) -> float:
        return sum(pe.mips for pe in self.pes)

    @property
    def free_pes(self) -> int:
        return sum(1 for pe in self.pes if pe.provisioner.allocated == 0)

    def is_suitable(self, vm: Vm) -> bool:
        return (
            self.ram_provisioner.available >= vm.ram
            and self.bw_provisioner.available >= vm.bw
            and self.vm_scheduler.is_suitable(vm)
        )

    def place(self, vm: Vm) -> bool:
        """Reserve RAM, bandwidth and PEs for a VM, all or nothing."""
        if not self.ram_provisioner.allocate(vm.id, vm.ram):
            return False
        if not self.bw_provisioner.allocate(vm.id, vm.bw):
            self.ram_provisioner.deallocate(vm.id)
            return False
        if not self.vm_scheduler.allocate_pes(vm):
            self.ram_provisioner.deallocate(vm.id)
            self.bw_provisioner.deallocate(vm.id)
            return False
        vm.host = self
        return True

    def release(self, vm: Vm) -> None:
        self.vm_scheduler.deallocate_pes(vm)
        self.ram_provisioner.deallocate(vm.id)
        self.bw_provisioner.deallocate(vm.id)
        if vm.host is self:
            vm.host = None


@dataclass(eq=False)
class SanStorage:
    """Storage area network attached to a datacenter."""
    capacity: float
    bandwidth: float
    network_latency: float


@dataclass
class DatacenterCharacteristics:
    """Static description and cost rates of a datacenter."""
    architecture: str
    os: str
    vmm: str
    cost_per_second: float = 0.0
    cost_per_mem: float = 0.0
    cost_per_storage: float = 0.0
    cost_per_bw: float = 0.0


@dataclass(eq=False)
class Datacenter:
    """A datacenter owning its hosts, storage and VM allocation policy."""
    id: int
    name: str
    hosts: List[Host]
    allocation_policy: VmAllocationPolicy
    characteristics: DatacenterCharacteristics
    storage: List[SanStorage] = field(default_factory=list)
    scheduling_interval: float = 0.0

    def __post_init__(self):
        for host in self.hosts:
            host.datacenter = self
        self.allocation_policy.attach(self)

    @property
    def num_pes(self) -> int:
        return sum(len(h.pes) for h in self.hosts)

    @property
    def total_mips(self) -> float:
        return sum(h.total_mips for h in self.hosts)
