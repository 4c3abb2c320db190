"""
Cloud Scenario Builder

Turns declarative descriptions of cloud infrastructure (datacenters with
hosts, customers with VMs and workloads) into concrete simulation entity
graphs. Pluggable strategies (schedulers, allocation policies, provisioners,
utilization models) are named by short aliases and resolved at build time.

Example usage (programmatic):
    from cloudsim_scenario import (
        ScenarioSpec, DatacenterSpec, HostSpec, CustomerSpec, VmSpec,
        WorkloadSpec, build_scenario,
    )

    scenario = ScenarioSpec(
        name="small",
        datacenters=[DatacenterSpec(amount=2, hosts=[HostSpec(pes=4)])],
        customers=[CustomerSpec(vms=[VmSpec()], cloudlets=[WorkloadSpec()])],
    )
    graph = build_scenario(scenario)
    print(len(graph.hosts), "hosts")

Example usage (scenario file):
    from cloudsim_scenario import run_file

    batch = run_file("scenarios/example.yaml")
    print(batch.summary)

CLI usage:
    cloudsim-scenario scenarios/example.yaml
    python -m cloudsim_scenario scenarios/example.yaml --output-dir reports/
"""

from .specs import (
    StorageSpec,
    HostSpec,
    DatacenterSpec,
    VmSpec,
    WorkloadSpec,
    CustomerSpec,
    ScenarioSpec,
    parse_scenarios,
    load_scenarios,
    save_scenarios,
    normalize_amount,
    count_entities,
)

from .registry import (
    CapabilityKind,
    AliasRegistry,
    PolicyResolver,
    PolicyResolutionError,
    DEFAULT_REGISTRY,
    load_type,
)

from .expansion import (
    IdCounter,
    ExpandedScenario,
    ScenarioExpander,
    expand,
    expand_scenario,
    generate_name,
)

from .entities import (
    Pe,
    Host,
    Datacenter,
    DatacenterCharacteristics,
    SanStorage,
    Broker,
    Vm,
    Workload,
)

from .assembler import (
    AssembledGraph,
    GraphAssembler,
    build_scenario,
)

from .runner import (
    SimulationEngine,
    ScenarioRunner,
    ScenarioRun,
    BatchResult,
    run_batch,
    run_file,
)

from .output import ReportWriter

__version__ = "0.1.0"

__all__ = [
    # Specs
    'StorageSpec',
    'HostSpec',
    'DatacenterSpec',
    'VmSpec',
    'WorkloadSpec',
    'CustomerSpec',
    'ScenarioSpec',
    'parse_scenarios',
    'load_scenarios',
    'save_scenarios',
    'normalize_amount',
    'count_entities',
    # Registry
    'CapabilityKind',
    'AliasRegistry',
    'PolicyResolver',
    'PolicyResolutionError',
    'DEFAULT_REGISTRY',
    'load_type',
    # Expansion
    'IdCounter',
    'ExpandedScenario',
    'ScenarioExpander',
    'expand',
    'expand_scenario',
    'generate_name',
    # Entities
    'Pe',
    'Host',
    'Datacenter',
    'DatacenterCharacteristics',
    'SanStorage',
    'Broker',
    'Vm',
    'Workload',
    # Assembly
    'AssembledGraph',
    'GraphAssembler',
    'build_scenario',
    # Runner
    'SimulationEngine',
    'ScenarioRunner',
    'ScenarioRun',
    'BatchResult',
    'run_batch',
    'run_file',
    # Output
    'ReportWriter',
]
