"""
Scenario runner for building entity graphs and handing them to an engine.

Orchestrates scenario spec -> expansion -> assembly -> (optional) engine
submission, and produces structured, printable results.

Example:
    scenarios = load_scenarios("scenarios/basic.yaml")
    batch = run_batch(scenarios, source="basic.yaml")
    print(batch.summary)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Union
import logging
import time

from . import formatter as fmt
from .assembler import AssembledGraph, GraphAssembler
from .entities import Broker, Datacenter, Host, Vm, Workload
from .expansion import ScenarioExpander
from .registry import PolicyResolver
from .specs import ScenarioSpec, load_scenarios

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


class SimulationEngine(Protocol):
    """What an engine must accept from a built scenario."""

    def submit_vm_list(self, broker: Broker, vms: List[Vm]) -> None: ...

    def submit_workload_list(self, broker: Broker, workloads: List[Workload]) -> None: ...

    def start(self) -> Any: ...


def _format_timestamp() -> str:
    """Return ISO 8601 timestamp in UTC."""
    return datetime.now(timezone.utc).isoformat()


def _class_name(obj: Any) -> str:
    return type(obj).__name__


def _blank(value: Any) -> Any:
    return "" if value is None else value


def _host_id(vm: Optional[Vm]) -> Optional[int]:
    if vm is None or vm.host is None:
        return None
    return vm.host.id


def _select(mapping: Dict[Broker, list], broker: Optional[Broker]) -> list:
    if broker is None:
        return [item for items in mapping.values() for item in items]
    return list(mapping.get(broker, []))


@dataclass
class ScenarioRun:
    """Outcome of building (and optionally simulating) one scenario."""
    label: str
    scenario: ScenarioSpec
    graph: AssembledGraph
    build_seconds: float
    total_seconds: float
    simulated: bool = False

    @property
    def datacenters(self) -> List[Datacenter]:
        return self.graph.datacenters

    @property
    def hosts(self) -> List[Host]:
        return self.graph.hosts

    @property
    def brokers(self) -> List[Broker]:
        return self.graph.brokers

    def vms(self, broker: Optional[Broker] = None) -> List[Vm]:
        return _select(self.graph.vms, broker)

    def workloads(self, broker: Optional[Broker] = None) -> List[Workload]:
        return _select(self.graph.workloads, broker)

    def find_vm(self, broker: Broker, vm_id: int) -> Optional[Vm]:
        return self.graph.find_vm(broker, vm_id)

    def finished_workloads(self, broker: Optional[Broker] = None) -> List[Workload]:
        """Workloads the engine bound to a VM, ordered by VM id then workload id."""
        bound = [w for w in self.workloads(broker) if w.vm is not None]
        return sorted(bound, key=lambda w: (w.vm.id, w.id))

    def result_rows(self, broker: Optional[Broker] = None) -> List[Dict[str, Any]]:
        """One row per finished workload with the VM, host and datacenter it ran on."""
        rows = []
        for w in self.finished_workloads(broker):
            vm = self.find_vm(w.broker, w.vm.id) or w.vm
            host = vm.host
            datacenter = host.datacenter if host is not None else None
            rows.append({
                "broker": w.broker.name,
                "workload": w.id,
                "vm": vm.id,
                "host": host.id if host is not None else None,
                "datacenter": datacenter.name if datacenter is not None else None,
            })
        return rows

    @property
    def summary(self) -> str:
        """Build a human-readable summary of the built graph."""
        lines = [
            fmt.title(self.label),
            "",
            fmt.kv_block([
                ("Datacenters", str(len(self.datacenters))),
                ("Hosts", str(len(self.hosts))),
                ("Brokers", str(len(self.brokers))),
                ("VMs", str(len(self.vms()))),
                ("Workloads", str(len(self.workloads()))),
                ("Build time", f"{self.build_seconds * 1000:.1f} ms"),
            ]),
            "",
        ]

        if self.datacenters:
            lines.append(fmt.heading("Datacenters"))
            lines.append(fmt.table(
                ["Name", "Hosts", "PEs", "Total MIPS", "Allocation"],
                [
                    [dc.name, len(dc.hosts), dc.num_pes, f"{dc.total_mips:,.0f}",
                     _class_name(dc.allocation_policy)]
                    for dc in self.datacenters
                ],
                aligns=['l', 'r', 'r', 'r', 'l'],
            ))
            lines.append("")

        if self.brokers:
            lines.append(fmt.heading("Brokers"))
            lines.append(fmt.table(
                ["Name", "VMs", "Workloads"],
                [
                    [b.name, len(self.vms(b)), len(self.workloads(b))]
                    for b in self.brokers
                ],
                aligns=['l', 'r', 'r'],
            ))
            lines.append("")

        for broker in self.brokers:
            rows = self.result_rows(broker)
            if not rows:
                continue
            lines.append(fmt.heading(f"Results: {broker.name}"))
            lines.append(fmt.table(
                ["Workload", "VM", "Host", "Datacenter"],
                [
                    [r["workload"], r["vm"], _blank(r["host"]), _blank(r["datacenter"])]
                    for r in rows
                ],
                aligns=['r', 'r', 'r', 'l'],
            ))
            lines.append("")

        if self.simulated:
            lines.append(fmt.status_line(True, "Submitted to engine and started"))

        return "\n".join(lines)

    def vm_rows(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": vm.id,
                "broker": vm.broker.name,
                "mips": vm.mips,
                "pes": vm.pes,
                "ram": vm.ram,
                "bw": vm.bw,
                "size": vm.size,
                "workload_scheduler": _class_name(vm.workload_scheduler),
            }
            for vm in self.vms()
        ]

    def workload_rows(self) -> List[Dict[str, Any]]:
        """Workload table; vm and host stay empty until the engine binds the workload."""
        return [
            {
                "id": w.id,
                "broker": w.broker.name,
                "length": w.length,
                "pes": w.pes,
                "file_size": w.file_size,
                "output_size": w.output_size,
                "utilization_model_cpu": _class_name(w.utilization_model_cpu),
                "utilization_model_ram": _class_name(w.utilization_model_ram),
                "utilization_model_bw": _class_name(w.utilization_model_bw),
                "vm": w.vm.id if w.vm is not None else None,
                "host": _host_id(w.vm),
            }
            for w in self.workloads()
        ]

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "label": self.label,
            "scenario": self.scenario.to_dict(),
            "build_seconds": self.build_seconds,
            "total_seconds": self.total_seconds,
            "simulated": self.simulated,
            "datacenters": [
                {
                    "id": dc.id,
                    "name": dc.name,
                    "allocation_policy": _class_name(dc.allocation_policy),
                    "scheduling_interval": dc.scheduling_interval,
                    "hosts": [
                        {
                            "id": h.id,
                            "pes": len(h.pes),
                            "mips": h.total_mips,
                            "ram": h.ram,
                            "bw": h.bw,
                            "storage": h.storage,
                            "vm_scheduler": _class_name(h.vm_scheduler),
                        }
                        for h in dc.hosts
                    ],
                }
                for dc in self.datacenters
            ],
            "brokers": [{"id": b.id, "name": b.name} for b in self.brokers],
            "vms": self.vm_rows(),
            "workloads": self.workload_rows(),
            "results": self.result_rows(),
        }


class ScenarioRunner:
    """
    Build one scenario and optionally hand it to a simulation engine.

    Args:
        scenario: Scenario to build
        label: Display label (default: scenario name)
        resolver: Resolver for strategy aliases (default: shared registry)
        engine: Engine receiving the VM and workload lists on run()
    """

    def __init__(
        self,
        scenario: ScenarioSpec,
        label: str = "",
        resolver: Optional[PolicyResolver] = None,
        engine: Optional[SimulationEngine] = None,
    ):
        self.scenario = scenario
        self.label = label or scenario.name or "scenario"
        self.resolver = resolver or PolicyResolver()
        self.engine = engine
        self._graph: Optional[AssembledGraph] = None
        self._build_seconds = 0.0

    def build(self) -> AssembledGraph:
        """Expand and assemble the scenario. Subsequent calls return the same graph."""
        if self._graph is None:
            start = time.perf_counter()
            expanded = ScenarioExpander().expand(self.scenario)
            self._graph = GraphAssembler(self.resolver).assemble(expanded)
            self._build_seconds = time.perf_counter() - start
            logger.debug("Built '%s' in %.4fs", self.label, self._build_seconds)
        return self._graph

    @property
    def graph(self) -> AssembledGraph:
        return self.build()

    @property
    def datacenters(self) -> List[Datacenter]:
        return self.graph.datacenters

    @property
    def hosts(self) -> List[Host]:
        return self.graph.hosts

    @property
    def brokers(self) -> List[Broker]:
        return self.graph.brokers

    def vms(self, broker: Optional[Broker] = None) -> List[Vm]:
        return _select(self.graph.vms, broker)

    def workloads(self, broker: Optional[Broker] = None) -> List[Workload]:
        return _select(self.graph.workloads, broker)

    def find_vm(self, broker: Broker, vm_id: int) -> Optional[Vm]:
        return self.graph.find_vm(broker, vm_id)

    def run(self) -> ScenarioRun:
        """
        Build the scenario, then submit it to the engine if one is set.

        Returns:
            ScenarioRun with the graph and timings
        """
        start = time.perf_counter()
        graph = self.build()
        simulated = False
        if self.engine is not None:
            for broker in graph.brokers:
                self.engine.submit_vm_list(broker, graph.vms[broker])
                self.engine.submit_workload_list(broker, graph.workloads[broker])
            self.engine.start()
            simulated = True
        return ScenarioRun(
            label=self.label,
            scenario=self.scenario,
            graph=graph,
            build_seconds=self._build_seconds,
            total_seconds=time.perf_counter() - start,
            simulated=simulated,
        )


@dataclass
class BatchResult:
    """Result of running several scenarios."""
    runs: List[ScenarioRun] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)  # label -> error message
    source: str = ""

    @property
    def is_empty(self) -> bool:
        """True when there was nothing to build."""
        return not self.runs and not self.errors

    @property
    def ok(self) -> bool:
        return not self.is_empty and not self.errors

    @property
    def summary(self) -> str:
        """Build summary of batch run."""
        lines = [fmt.title(f"Batch: {self.source}" if self.source else "Batch"), ""]
        if self.is_empty:
            lines.append(fmt.info_line("Nothing to build"))
            return "\n".join(lines)

        lines.append(fmt.kv_block([
            ("Built", str(len(self.runs))),
            ("Errors", str(len(self.errors))),
        ]))
        lines.append("")

        if self.runs:
            lines.append(fmt.heading("Built scenarios"))
            for run in self.runs:
                lines.append(fmt.status_line(
                    True,
                    f"{run.label}: {len(run.hosts)} hosts, {len(run.vms())} VMs, "
                    f"{len(run.workloads())} workloads",
                ))
            lines.append("")

        if self.errors:
            lines.append(fmt.heading("Errors"))
            for label, error in self.errors.items():
                lines.append(fmt.status_line(False, f"{label}: {error}"))
            lines.append("")

        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "meta": {
                "timestamp": _format_timestamp(),
                "version": VERSION,
                "source": self.source,
            },
            "runs": [run.to_dict() for run in self.runs],
            "errors": dict(self.errors),
        }


def run_batch(
    scenarios: Sequence[ScenarioSpec],
    source: str = "",
    resolver: Optional[PolicyResolver] = None,
    engine_factory: Optional[Callable[[], SimulationEngine]] = None,
) -> BatchResult:
    """
    Build every scenario, isolating failures per scenario.

    Args:
        scenarios: Scenarios to build, in order
        source: Name used in labels (e.g. the file name)
        resolver: Resolver shared by all scenarios
        engine_factory: Creates a fresh engine for each scenario

    Returns:
        BatchResult with one run per successful scenario and one error
        message per failed scenario
    """
    resolver = resolver or PolicyResolver()
    batch = BatchResult(source=source)

    for index, scenario in enumerate(scenarios):
        label = f"{index} - {source or scenario.name or 'scenario'}"
        try:
            engine = engine_factory() if engine_factory is not None else None
            run = ScenarioRunner(scenario, label=label, resolver=resolver, engine=engine).run()
        except Exception as e:
            logger.error("Scenario '%s' failed: %s", label, e)
            batch.errors[label] = str(e)
            continue
        batch.runs.append(run)

    return batch


def run_file(
    path: Union[str, Path],
    resolver: Optional[PolicyResolver] = None,
    engine_factory: Optional[Callable[[], SimulationEngine]] = None,
) -> BatchResult:
    """Load all scenarios from a file and run them as one batch."""
    path = Path(path)
    scenarios = load_scenarios(path)
    return run_batch(scenarios, source=path.name, resolver=resolver, engine_factory=engine_factory)
