"""
Declarative scenario specs and scenario-file loading.

A scenario file describes datacenters (with hosts and SAN storage) and
customers (with VMs and cloudlets). Every entry may carry an ``amount`` that
asks for that many replicas; the expansion step turns them into concrete,
identified entities.

Keys may be written in snake_case or in the camelCase used by YAML scenario
files (``vmAllocationPolicy``, ``costPerSec``, ...).

Example (YAML, one document per scenario):

    datacenters:
      - !datacenter
        amount: 2
        vmAllocationPolicy: Simple
        hosts:
          - !host
            pes: 4
            mips: 2000
            vmScheduler: TimeShared
    customers:
      - !customer
        vms:
          - !vm
            amount: 2
            cloudletScheduler: SpaceShared
        cloudlets:
          - !cloudlet
            length: 10000
"""

from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json

import json5
import yaml


def _camel_case(key: str) -> str:
    head, *rest = key.split('_')
    return head + ''.join(part.title() for part in rest)


def _get(data: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Read ``key`` from a spec mapping, accepting its camelCase spelling too.

    Explicit nulls fall back to the default.
    """
    value = data.get(key)
    if value is None:
        value = data.get(_camel_case(key))
    return default if value is None else value


# --- Spec dataclasses ---

@dataclass(frozen=True)
class StorageSpec:
    """SAN storage attached to a datacenter."""
    capacity: float = 0.0
    bandwidth: float = 0.0
    network_latency: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "StorageSpec":
        return cls(
            capacity=_get(data, "capacity", 0.0),
            bandwidth=_get(data, "bandwidth", 0.0),
            network_latency=_get(data, "network_latency", 0.0),
        )


@dataclass(frozen=True)
class HostSpec:
    """Specification for a group of identical physical hosts.

    Args:
        id: Explicit host id (0 = auto-assign)
        pes: Number of processing elements (cores)
        mips: Capacity of each PE in MIPS
        ram: RAM capacity (MB)
        bw: Bandwidth capacity (Mbps)
        storage: Storage capacity (MB)
        ram_provisioner: Alias of the RAM provisioner
        bw_provisioner: Alias of the bandwidth provisioner
        pe_provisioner: Alias of the per-PE provisioner
        vm_scheduler: Alias of the VM scheduler
        amount: Number of replicas
    """
    id: int = 0
    pes: int = 1
    mips: float = 1000.0
    ram: int = 2048
    bw: int = 10000
    storage: int = 1000000
    ram_provisioner: str = "Simple"
    bw_provisioner: str = "Simple"
    pe_provisioner: str = "Simple"
    vm_scheduler: str = "SpaceShared"
    amount: int = 1

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "HostSpec":
        return cls(
            id=_get(data, "id", 0),
            pes=_get(data, "pes", 1),
            mips=_get(data, "mips", 1000.0),
            ram=_get(data, "ram", 2048),
            bw=_get(data, "bw", 10000),
            storage=_get(data, "storage", 1000000),
            ram_provisioner=_get(data, "ram_provisioner", "Simple"),
            bw_provisioner=_get(data, "bw_provisioner", "Simple"),
            pe_provisioner=_get(data, "pe_provisioner", "Simple"),
            vm_scheduler=_get(data, "vm_scheduler", "SpaceShared"),
            amount=_get(data, "amount", 1),
        )


@dataclass(frozen=True)
class DatacenterSpec:
    """Specification for a group of identical datacenters.

    A blank name is replaced by ``datacenter<n>`` at expansion time.
    """
    name: str = ""
    architecture: str = "x86"
    os: str = "Linux"
    vmm: str = "Xen"
    vm_allocation_policy: str = "Simple"
    cost_per_sec: float = 0.0
    cost_per_mem: float = 0.0
    cost_per_storage: float = 0.0
    cost_per_bw: float = 0.0
    scheduling_interval: float = 0.0
    hosts: List[HostSpec] = field(default_factory=list)
    sans: List[StorageSpec] = field(default_factory=list)
    amount: int = 1

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "DatacenterSpec":
        return cls(
            name=_get(data, "name", ""),
            architecture=_get(data, "architecture", "x86"),
            os=_get(data, "os", "Linux"),
            vmm=_get(data, "vmm", "Xen"),
            vm_allocation_policy=_get(data, "vm_allocation_policy", "Simple"),
            cost_per_sec=_get(data, "cost_per_sec", 0.0),
            cost_per_mem=_get(data, "cost_per_mem", 0.0),
            cost_per_storage=_get(data, "cost_per_storage", 0.0),
            cost_per_bw=_get(data, "cost_per_bw", 0.0),
            scheduling_interval=_get(data, "scheduling_interval", 0.0),
            hosts=[HostSpec.from_dict(h) for h in _get(data, "hosts", [])],
            sans=[StorageSpec.from_dict(s) for s in _get(data, "sans", [])],
            amount=_get(data, "amount", 1),
        )


@dataclass(frozen=True)
class VmSpec:
    """Specification for a group of identical VMs requested by a customer."""
    id: int = 0
    mips: float = 1000.0
    pes: int = 1
    ram: int = 512
    bw: int = 1000
    size: int = 10000  # Image size (MB)
    cloudlet_scheduler: str = "TimeShared"
    amount: int = 1

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "VmSpec":
        return cls(
            id=_get(data, "id", 0),
            mips=_get(data, "mips", 1000.0),
            pes=_get(data, "pes", 1),
            ram=_get(data, "ram", 512),
            bw=_get(data, "bw", 1000),
            size=_get(data, "size", 10000),
            cloudlet_scheduler=_get(
                data, "cloudlet_scheduler", _get(data, "workload_scheduler", "TimeShared")
            ),
            amount=_get(data, "amount", 1),
        )


@dataclass(frozen=True)
class WorkloadSpec:
    """Specification for a group of identical workloads (cloudlets)."""
    length: int = 10000  # Instructions (MI)
    pes: int = 1
    file_size: int = 300
    output_size: int = 300
    utilization_model_cpu: str = "Full"
    utilization_model_ram: str = "Full"
    utilization_model_bw: str = "Full"
    amount: int = 1

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "WorkloadSpec":
        return cls(
            length=_get(data, "length", 10000),
            pes=_get(data, "pes", 1),
            file_size=_get(data, "file_size", 300),
            output_size=_get(data, "output_size", 300),
            utilization_model_cpu=_get(data, "utilization_model_cpu", "Full"),
            utilization_model_ram=_get(data, "utilization_model_ram", "Full"),
            utilization_model_bw=_get(data, "utilization_model_bw", "Full"),
            amount=_get(data, "amount", 1),
        )


@dataclass(frozen=True)
class CustomerSpec:
    """Specification for a group of identical customers.

    Each produced customer gets its own broker. A blank name is replaced by
    ``customer<n>`` at expansion time.
    """
    name: str = ""
    amount: int = 1
    vms: List[VmSpec] = field(default_factory=list)
    cloudlets: List[WorkloadSpec] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "CustomerSpec":
        cloudlets = _get(data, "cloudlets", _get(data, "workloads", []))
        return cls(
            name=_get(data, "name", ""),
            amount=_get(data, "amount", 1),
            vms=[VmSpec.from_dict(v) for v in _get(data, "vms", [])],
            cloudlets=[WorkloadSpec.from_dict(c) for c in cloudlets],
        )


@dataclass(frozen=True)
class ScenarioSpec:
    """
    One complete simulation scenario.

    This is the top-level value read from a scenario file.
    """
    name: str = ""
    datacenters: List[DatacenterSpec] = field(default_factory=list)
    customers: List[CustomerSpec] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ScenarioSpec":
        return cls(
            name=_get(data, "name", ""),
            datacenters=[DatacenterSpec.from_dict(d) for d in _get(data, "datacenters", [])],
            customers=[CustomerSpec.from_dict(c) for c in _get(data, "customers", [])],
        )


# --- Scenario files ---

class _ScenarioLoader(yaml.SafeLoader):
    """SafeLoader accepting local class tags such as ``!datacenter``."""


def _construct_tagged(loader: yaml.SafeLoader, tag_suffix: str, node: yaml.Node) -> Any:
    # Tags name an entity class; the key layout alone is enough to build the spec.
    if isinstance(node, yaml.MappingNode):
        return loader.construct_mapping(node, deep=True)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    return loader.construct_scalar(node)


_ScenarioLoader.add_multi_constructor('!', _construct_tagged)

YAML_SUFFIXES = ('.yaml', '.yml')


def _split_documents(data: Any) -> List[Any]:
    """Split a parsed JSON value into per-scenario documents."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get('scenarios'), list):
        return data['scenarios']
    return [data]


def parse_scenarios(documents: List[Any], source: str = "") -> List[ScenarioSpec]:
    """
    Convert parsed documents into scenario specs.

    ``None`` documents (e.g. an empty YAML document) are skipped.

    Raises:
        ValueError: If a document is not a mapping
    """
    scenarios = []
    for index, doc in enumerate(documents):
        if doc is None:
            continue
        if not isinstance(doc, dict):
            where = f" in {source}" if source else ""
            raise ValueError(
                f"Scenario #{index}{where} must be a mapping, got {type(doc).__name__}"
            )
        scenarios.append(ScenarioSpec.from_dict(doc))
    return scenarios


def load_scenarios(path: Union[str, Path]) -> List[ScenarioSpec]:
    """
    Load every scenario from a YAML or JSON scenario file.

    YAML files (.yaml/.yml) hold one scenario per document. Other files are
    read as JSON with comments allowed (json5): a list of scenarios, a mapping
    with a ``scenarios`` list, or a single scenario mapping.

    Args:
        path: Path to the scenario file

    Returns:
        List of ScenarioSpec (empty if the file holds no scenario)

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError / ValueError: If the file can't be parsed
    """
    path = Path(path)
    with open(path, 'r') as f:
        if path.suffix.lower() in YAML_SUFFIXES:
            documents = list(yaml.load_all(f, Loader=_ScenarioLoader))
        else:
            text = f.read()
            documents = _split_documents(json5.loads(text)) if text.strip() else []
    return parse_scenarios(documents, source=str(path))


def save_scenarios(scenarios: List[ScenarioSpec], path: Union[str, Path]) -> None:
    """
    Save scenarios to a JSON file readable by load_scenarios.

    Args:
        scenarios: Scenarios to save
        path: Path to output file
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump({"scenarios": [s.to_dict() for s in scenarios]}, f, indent=2)


def normalize_amount(amount: Optional[int]) -> int:
    """Replica count of a spec entry; missing, zero or negative means 1."""
    return amount if amount and amount > 0 else 1


def count_entities(scenario: ScenarioSpec) -> Dict[str, int]:
    """Count the concrete entities a scenario will expand into."""
    def amount(spec: Any) -> int:
        return normalize_amount(spec.amount)

    counts = {"datacenters": 0, "hosts": 0, "brokers": 0, "vms": 0, "cloudlets": 0}
    for dc in scenario.datacenters:
        counts["datacenters"] += amount(dc)
        counts["hosts"] += amount(dc) * sum(amount(h) for h in dc.hosts)
    for customer in scenario.customers:
        counts["brokers"] += amount(customer)
        counts["vms"] += amount(customer) * sum(amount(v) for v in customer.vms)
        counts["cloudlets"] += amount(customer) * sum(amount(c) for c in customer.cloudlets)
    return counts
