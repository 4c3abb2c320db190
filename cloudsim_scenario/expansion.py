"""
Expansion of declarative specs into identified entity descriptions.

Every spec entry is repeated ``amount`` times. Each produced entity gets an
identity from an IdCounter shared by all entries of its class within one
scope, or the entry's explicit id for its first replica:

    counter = IdCounter()
    expand([HostSpec(id=7, amount=3)], counter, explicit_id=lambda s: s.id)
    # -> [(spec, 7), (spec, 1), (spec, 2)]

Explicit ids are reserved in their scope before any id is handed out, so
the counter never issues them:

    expand([HostSpec(id=3), HostSpec(amount=3)], IdCounter(), lambda s: s.id)
    # -> ids 3, 1, 2, 4

Scopes used by ScenarioExpander:
- datacenters, customers, hosts, VMs: one counter per scenario
- workloads: one counter per customer (broker)
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from .specs import (
    ScenarioSpec, DatacenterSpec, HostSpec, CustomerSpec, VmSpec, WorkloadSpec,
    normalize_amount,
)

logger = logging.getLogger(__name__)


class IdCounter:
    """
    Monotonic 1-based identity counter for one scope.

    Ids reserved for explicit use are skipped by next(). Each reserved id can
    be claimed by a single spec entry; a second entry claiming it is an error.
    """

    def __init__(self, start: int = 0):
        self.value = start
        self._reserved: set = set()
        self._issued: set = set()
        self._owners: Dict[int, Any] = {}

    def reserve(self, identities: Iterable[int]) -> None:
        self._reserved.update(i for i in identities if i)

    def next(self) -> int:
        self.value += 1
        while self.value in self._reserved:
            self.value += 1
        self._issued.add(self.value)
        return self.value

    def claim(self, identity: int, owner: Any) -> Optional[int]:
        """
        Take an explicit id for ``owner`` (a spec entry).

        Returns None when ``owner`` already holds the id, e.g. when its parent
        entry is replicated; the caller then draws from the counter.

        Raises:
            ValueError: If another entry already holds the id
        """
        holder = self._owners.get(identity)
        if holder is owner:
            return None
        if holder is not None or identity in self._issued:
            raise ValueError(f"Duplicate id {identity} in {type(owner).__name__} entries")
        self._reserved.add(identity)
        self._owners[identity] = owner
        return identity


def expand(
    specs: Sequence[Any],
    counter: IdCounter,
    explicit_id: Optional[Callable[[Any], int]] = None,
) -> List[Tuple[Any, int]]:
    """
    Replicate spec entries and assign identities.

    The explicit id (if non-zero) is used for the first replica of an entry
    only; later replicas draw from the counter, which skips every explicit id
    of the scope. Order is preserved and replicas stay contiguous.

    Args:
        specs: Spec entries with an ``amount`` attribute
        counter: Counter shared by the scope these entries belong to
        explicit_id: Returns the entry's explicit id (0 = none)

    Returns:
        List of (spec, identity) pairs

    Raises:
        ValueError: If two entries declare the same explicit id
    """
    fixed_ids = [explicit_id(spec) if explicit_id is not None else 0 for spec in specs]
    counter.reserve(fixed_ids)
    expanded = []
    for spec, fixed_id in zip(specs, fixed_ids):
        for replica in range(normalize_amount(spec.amount)):
            identity = None
            if replica == 0 and fixed_id:
                identity = counter.claim(fixed_id, spec)
            if identity is None:
                identity = counter.next()
            expanded.append((spec, identity))
    return expanded


def generate_name(name: Optional[str], prefix: str, count: int) -> str:
    """Return ``name``, or ``<prefix><count>`` when it is blank."""
    if name is None or not name.strip():
        return f"{prefix}{count}"
    return name


# --- Expanded records ---

@dataclass
class ExpandedHost:
    id: int
    spec: HostSpec


@dataclass
class ExpandedDatacenter:
    id: int
    name: str
    spec: DatacenterSpec
    hosts: List[ExpandedHost] = field(default_factory=list)


@dataclass
class ExpandedVm:
    id: int
    spec: VmSpec


@dataclass
class ExpandedWorkload:
    id: int
    spec: WorkloadSpec


@dataclass
class ExpandedCustomer:
    id: int
    name: str
    spec: CustomerSpec
    vms: List[ExpandedVm] = field(default_factory=list)
    workloads: List[ExpandedWorkload] = field(default_factory=list)


@dataclass
class ExpandedScenario:
    """A scenario with every replica spelled out and identified."""
    name: str
    datacenters: List[ExpandedDatacenter] = field(default_factory=list)
    customers: List[ExpandedCustomer] = field(default_factory=list)

    @property
    def total_hosts(self) -> int:
        return sum(len(dc.hosts) for dc in self.datacenters)

    @property
    def total_vms(self) -> int:
        return sum(len(c.vms) for c in self.customers)

    @property
    def total_workloads(self) -> int:
        return sum(len(c.workloads) for c in self.customers)


class ScenarioExpander:
    """
    Expand a ScenarioSpec into an ExpandedScenario.

    Counters are created fresh for each call to expand().
    """

    def expand(self, scenario: ScenarioSpec) -> ExpandedScenario:
        datacenters = self._expand_datacenters(scenario.datacenters)
        customers = self._expand_customers(scenario.customers)
        expanded = ExpandedScenario(
            name=scenario.name,
            datacenters=datacenters,
            customers=customers,
        )
        logger.debug(
            "Expanded scenario '%s': %d datacenters, %d hosts, %d customers, "
            "%d VMs, %d workloads",
            scenario.name, len(datacenters), expanded.total_hosts,
            len(customers), expanded.total_vms, expanded.total_workloads,
        )
        return expanded

    def _expand_datacenters(self, specs: Sequence[DatacenterSpec]) -> List[ExpandedDatacenter]:
        dc_counter = IdCounter()
        host_counter = IdCounter()
        host_counter.reserve(h.id for spec in specs for h in spec.hosts)
        datacenters = []
        for spec, dc_id in expand(specs, dc_counter):
            hosts = [
                ExpandedHost(id=host_id, spec=host_spec)
                for host_spec, host_id in expand(spec.hosts, host_counter, lambda h: h.id)
            ]
            datacenters.append(ExpandedDatacenter(
                id=dc_id,
                name=generate_name(spec.name, "datacenter", dc_id),
                spec=spec,
                hosts=hosts,
            ))
        return datacenters

    def _expand_customers(self, specs: Sequence[CustomerSpec]) -> List[ExpandedCustomer]:
        customer_counter = IdCounter()
        vm_counter = IdCounter()
        vm_counter.reserve(v.id for spec in specs for v in spec.vms)
        customers = []
        for spec, customer_id in expand(specs, customer_counter):
            vms = [
                ExpandedVm(id=vm_id, spec=vm_spec)
                for vm_spec, vm_id in expand(spec.vms, vm_counter, lambda v: v.id)
            ]
            workload_counter = IdCounter()
            workloads = [
                ExpandedWorkload(id=workload_id, spec=workload_spec)
                for workload_spec, workload_id in expand(spec.cloudlets, workload_counter)
            ]
            customers.append(ExpandedCustomer(
                id=customer_id,
                name=generate_name(spec.name, "customer", customer_id),
                spec=spec,
                vms=vms,
                workloads=workloads,
            ))
        return customers


def expand_scenario(scenario: ScenarioSpec) -> ExpandedScenario:
    """Convenience function to expand a scenario with fresh counters."""
    return ScenarioExpander().expand(scenario)
