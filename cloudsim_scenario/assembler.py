"""
Assembly of expanded scenarios into concrete entity graphs.

Builds hosts, datacenters, brokers, VMs and workloads bottom-up, resolving
every strategy alias exactly once through a PolicyResolver. Nothing is
submitted to a simulation engine here.

Example:
    from cloudsim_scenario import load_scenarios, build_scenario

    scenario = load_scenarios("scenarios/basic.yaml")[0]
    graph = build_scenario(scenario)
    for broker in graph.brokers:
        print(broker.name, len(graph.vms[broker]), "VMs")
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .entities import (
    Broker, Datacenter, DatacenterCharacteristics, Host, Pe, SanStorage, Vm, Workload,
)
from .expansion import (
    ExpandedCustomer, ExpandedDatacenter, ExpandedHost, ExpandedScenario,
    ScenarioExpander,
)
from .registry import PolicyResolver
from .specs import DatacenterSpec, HostSpec, ScenarioSpec, VmSpec, WorkloadSpec


@dataclass
class AssembledGraph:
    """
    Concrete entities of one scenario, ready for a simulation engine.

    ``vms`` and ``workloads`` map each broker to the lists it owns; brokers
    keep the order in which customers were expanded.
    """
    datacenters: List[Datacenter] = field(default_factory=list)
    vms: Dict[Broker, List[Vm]] = field(default_factory=dict)
    workloads: Dict[Broker, List[Workload]] = field(default_factory=dict)

    @property
    def hosts(self) -> List[Host]:
        return [host for dc in self.datacenters for host in dc.hosts]

    @property
    def brokers(self) -> List[Broker]:
        return list(self.vms.keys())

    def all_vms(self) -> List[Vm]:
        return [vm for vms in self.vms.values() for vm in vms]

    def all_workloads(self) -> List[Workload]:
        return [w for workloads in self.workloads.values() for w in workloads]

    def find_vm(self, broker: Broker, vm_id: int) -> Optional[Vm]:
        """Find a VM by id among the VMs owned by ``broker``."""
        for vm in self.vms.get(broker, []):
            if vm.id == vm_id:
                return vm
        return None


class GraphAssembler:
    """
    Turn an ExpandedScenario into an AssembledGraph.

    Args:
        resolver: Resolver for strategy aliases (default: shared registry)
    """

    def __init__(self, resolver: Optional[PolicyResolver] = None):
        self.resolver = resolver or PolicyResolver()

    def assemble(self, expanded: ExpandedScenario) -> AssembledGraph:
        graph = AssembledGraph()
        graph.datacenters = [self._build_datacenter(dc) for dc in expanded.datacenters]
        for customer in expanded.customers:
            broker, vms, workloads = self._build_customer(customer)
            graph.vms[broker] = vms
            graph.workloads[broker] = workloads
        return graph

    # --- Datacenters ---

    def _build_pes(self, spec: HostSpec) -> List[Pe]:
        return [
            Pe(id=i, mips=spec.mips,
               provisioner=self.resolver.pe_provisioner(spec.pe_provisioner, spec.mips))
            for i in range(spec.pes)
        ]

    def _build_host(self, expanded: ExpandedHost) -> Host:
        spec = expanded.spec
        pes = self._build_pes(spec)
        return Host(
            id=expanded.id,
            ram=spec.ram,
            bw=spec.bw,
            storage=spec.storage,
            pes=pes,
            ram_provisioner=self.resolver.ram_provisioner(spec.ram_provisioner, spec.ram),
            bw_provisioner=self.resolver.bw_provisioner(spec.bw_provisioner, spec.bw),
            vm_scheduler=self.resolver.vm_scheduler(spec.vm_scheduler),
        )

    def _build_characteristics(self, spec: DatacenterSpec) -> DatacenterCharacteristics:
        return DatacenterCharacteristics(
            architecture=spec.architecture,
            os=spec.os,
            vmm=spec.vmm,
            cost_per_second=spec.cost_per_sec,
            cost_per_mem=spec.cost_per_mem,
            cost_per_storage=spec.cost_per_storage,
            cost_per_bw=spec.cost_per_bw,
        )

    def _build_datacenter(self, expanded: ExpandedDatacenter) -> Datacenter:
        spec = expanded.spec
        hosts = [self._build_host(h) for h in expanded.hosts]
        storage = [
            SanStorage(capacity=s.capacity, bandwidth=s.bandwidth, network_latency=s.network_latency)
            for s in spec.sans
        ]
        return Datacenter(
            id=expanded.id,
            name=expanded.name,
            hosts=hosts,
            allocation_policy=self.resolver.allocation_policy(spec.vm_allocation_policy),
            characteristics=self._build_characteristics(spec),
            storage=storage,
            scheduling_interval=spec.scheduling_interval,
        )

    # --- Customers ---

    def _build_vm(self, vm_id: int, spec: VmSpec, broker: Broker) -> Vm:
        return Vm(
            id=vm_id,
            broker=broker,
            mips=spec.mips,
            pes=spec.pes,
            ram=spec.ram,
            bw=spec.bw,
            size=spec.size,
            workload_scheduler=self.resolver.workload_scheduler(spec.cloudlet_scheduler),
        )

    def _build_workload(self, workload_id: int, spec: WorkloadSpec, broker: Broker) -> Workload:
        return Workload(
            id=workload_id,
            broker=broker,
            length=spec.length,
            pes=spec.pes,
            file_size=spec.file_size,
            output_size=spec.output_size,
            utilization_model_cpu=self.resolver.utilization_model(spec.utilization_model_cpu),
            utilization_model_ram=self.resolver.utilization_model(spec.utilization_model_ram),
            utilization_model_bw=self.resolver.utilization_model(spec.utilization_model_bw),
        )

    def _build_customer(self, expanded: ExpandedCustomer):
        broker = Broker(id=expanded.id, name=expanded.name)
        vms = [self._build_vm(v.id, v.spec, broker) for v in expanded.vms]
        workloads = [self._build_workload(w.id, w.spec, broker) for w in expanded.workloads]
        return broker, vms, workloads


def build_scenario(
    scenario: ScenarioSpec,
    resolver: Optional[PolicyResolver] = None,
) -> AssembledGraph:
    """Expand and assemble a scenario in one pass."""
    expanded = ScenarioExpander().expand(scenario)
    return GraphAssembler(resolver).assemble(expanded)
