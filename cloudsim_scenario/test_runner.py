"""
Unit tests for the scenario runner, batch isolation, report output and CLI.

Run with: pytest cloudsim_scenario/test_runner.py -v
"""

import csv
import json
import logging
from pathlib import Path

import pytest

from .cli import main
from .output import ReportWriter, safe_name
from .registry import DEFAULT_REGISTRY, AliasRegistry, PolicyResolver
from .runner import BatchResult, ScenarioRunner, run_batch, run_file
from .specs import CustomerSpec, DatacenterSpec, HostSpec, ScenarioSpec, VmSpec, WorkloadSpec


class RecordingEngine:
    """Engine double recording what it was handed."""

    instances = []

    def __init__(self):
        self.vm_lists = []
        self.workload_lists = []
        self.started = False
        RecordingEngine.instances.append(self)

    def submit_vm_list(self, broker, vms):
        self.vm_lists.append((broker, list(vms)))

    def submit_workload_list(self, broker, workloads):
        self.workload_lists.append((broker, list(workloads)))

    def start(self):
        self.started = True


class BindingEngine(RecordingEngine):
    """
    Engine double that places VMs and binds workloads on start().

    Workloads are bound round-robin in reverse submission order; the first
    workload of each broker is left unbound.
    """

    def __init__(self, datacenters):
        super().__init__()
        self.datacenters = datacenters

    def start(self):
        super().start()
        for _, vms in self.vm_lists:
            for vm in vms:
                assert any(dc.allocation_policy.allocate(vm) for dc in self.datacenters)
        vms_by_broker = dict(self.vm_lists)
        for broker, workloads in self.workload_lists:
            vms = vms_by_broker[broker]
            for i, workload in enumerate(reversed(workloads[1:])):
                workload.vm = vms[i % len(vms)]


@pytest.fixture(autouse=True)
def reset_engines():
    RecordingEngine.instances = []
    yield
    RecordingEngine.instances = []


@pytest.fixture
def resolver():
    return PolicyResolver(AliasRegistry())


def good_scenario(name="good"):
    return ScenarioSpec(
        name=name,
        datacenters=[DatacenterSpec(name="dc", hosts=[HostSpec(amount=2, pes=4)])],
        customers=[CustomerSpec(
            amount=2,
            vms=[VmSpec(amount=2)],
            cloudlets=[WorkloadSpec(amount=3)],
        )],
    )


def bad_scenario():
    return ScenarioSpec(
        name="bad",
        datacenters=[DatacenterSpec(vm_allocation_policy="Nonexistent", hosts=[HostSpec()])],
    )


GOOD_YAML = """\
name: from-file
datacenters:
  - !datacenter
    hosts:
      - !host
        pes: 2
customers:
  - !customer
    vms:
      - !vm {}
    cloudlets:
      - !cloudlet {}
"""


class TestScenarioRunner:
    """Tests for building and running one scenario."""

    def test_accessors(self, resolver):
        runner = ScenarioRunner(good_scenario(), resolver=resolver)

        assert len(runner.datacenters) == 1
        assert len(runner.hosts) == 2
        assert len(runner.brokers) == 2
        assert len(runner.vms()) == 4
        assert len(runner.workloads()) == 6

    def test_per_broker_accessors(self, resolver):
        runner = ScenarioRunner(good_scenario(), resolver=resolver)
        broker = runner.brokers[1]

        assert [vm.id for vm in runner.vms(broker)] == [3, 4]
        assert [w.id for w in runner.workloads(broker)] == [1, 2, 3]
        assert runner.find_vm(broker, 3).broker is broker
        assert runner.find_vm(broker, 1) is None

    def test_build_is_idempotent(self, resolver):
        runner = ScenarioRunner(good_scenario(), resolver=resolver)
        assert runner.build() is runner.build()

    def test_label_defaults_to_name(self, resolver):
        assert ScenarioRunner(good_scenario("named"), resolver=resolver).label == "named"

    def test_run_without_engine(self, resolver):
        run = ScenarioRunner(good_scenario(), resolver=resolver).run()

        assert not run.simulated
        assert run.build_seconds >= 0.0
        assert run.total_seconds >= 0.0
        assert len(run.vms()) == 4

    def test_run_submits_to_engine(self, resolver):
        engine = RecordingEngine()
        run = ScenarioRunner(good_scenario(), resolver=resolver, engine=engine).run()

        assert run.simulated
        assert engine.started
        assert [b for b, _ in engine.vm_lists] == run.brokers
        assert [len(vms) for _, vms in engine.vm_lists] == [2, 2]
        assert [len(ws) for _, ws in engine.workload_lists] == [3, 3]

    def test_summary(self, resolver):
        run = ScenarioRunner(good_scenario(), label="0 - demo", resolver=resolver).run()
        summary = run.summary

        assert "0 - demo" in summary
        assert "Datacenters" in summary
        assert "VmAllocationPolicySimple" in summary
        assert "customer1" in summary

    def test_to_dict_is_json_serializable(self, resolver):
        run = ScenarioRunner(good_scenario(), resolver=resolver).run()
        data = json.loads(json.dumps(run.to_dict()))

        assert data["label"] == "good"
        assert len(data["datacenters"][0]["hosts"]) == 2
        assert data["vms"][0]["workload_scheduler"] == "CloudletSchedulerTimeShared"
        assert data["workloads"][0]["utilization_model_cpu"] == "UtilizationModelFull"
        assert data["scenario"]["name"] == "good"


class TestFinishedWorkloads:
    """Tests for the finished-workload results report."""

    @pytest.fixture
    def bound_run(self, resolver):
        runner = ScenarioRunner(good_scenario(), label="bound", resolver=resolver)
        runner.engine = BindingEngine(runner.datacenters)
        return runner.run()

    def test_only_bound_workloads(self, bound_run):
        first, second = bound_run.brokers

        assert [w.id for w in bound_run.finished_workloads(first)] == [3, 2]
        assert [w.id for w in bound_run.finished_workloads(second)] == [3, 2]
        assert len(bound_run.finished_workloads()) == 4

    def test_rows_sorted_by_vm_then_workload(self, bound_run):
        rows = bound_run.result_rows()
        assert [(r["broker"], r["vm"], r["workload"]) for r in rows] == [
            ("customer1", 1, 3), ("customer1", 2, 2),
            ("customer2", 3, 3), ("customer2", 4, 2),
        ]

    def test_rows_resolve_host_and_datacenter(self, bound_run):
        """Worst fit alternates the two hosts."""
        rows = bound_run.result_rows()

        assert [r["host"] for r in rows] == [1, 2, 1, 2]
        assert {r["datacenter"] for r in rows} == {"dc"}
        for row in rows:
            broker = next(b for b in bound_run.brokers if b.name == row["broker"])
            assert bound_run.find_vm(broker, row["vm"]).host.id == row["host"]

    def test_summary_has_results_per_broker(self, bound_run):
        summary = bound_run.summary

        assert "Results: customer1" in summary
        assert "Results: customer2" in summary

    def test_no_results_without_binding(self, resolver):
        run = ScenarioRunner(good_scenario(), resolver=resolver, engine=RecordingEngine()).run()

        assert run.finished_workloads() == []
        assert run.result_rows() == []
        assert "Results:" not in run.summary

    def test_workload_rows_carry_binding(self, bound_run):
        rows = {(r["broker"], r["id"]): r for r in bound_run.workload_rows()}

        assert rows[("customer1", 1)]["vm"] is None
        assert rows[("customer1", 1)]["host"] is None
        assert rows[("customer1", 3)]["vm"] == 1
        assert rows[("customer2", 2)]["vm"] == 4
        assert rows[("customer2", 2)]["host"] == 2

    def test_to_dict_results(self, bound_run):
        data = json.loads(json.dumps(bound_run.to_dict()))
        assert [r["workload"] for r in data["results"]] == [3, 2, 3, 2]

    def test_release_clears_host(self, bound_run):
        vm = bound_run.vms()[0]
        host = vm.host

        host.release(vm)

        assert vm.host is None


class TestRunBatch:
    """Tests for batch runs and per-scenario isolation."""

    def test_labels(self, resolver):
        batch = run_batch([good_scenario("a"), good_scenario("b")], source="file.yaml",
                          resolver=resolver)
        assert [run.label for run in batch.runs] == ["0 - file.yaml", "1 - file.yaml"]

    def test_labels_without_source(self, resolver):
        batch = run_batch([good_scenario("a"), good_scenario("b")], resolver=resolver)
        assert [run.label for run in batch.runs] == ["0 - a", "1 - b"]

    def test_failure_is_isolated(self, resolver, caplog):
        """A failing scenario is logged and recorded; the others still run."""
        with caplog.at_level(logging.ERROR, logger="cloudsim_scenario.runner"):
            batch = run_batch(
                [good_scenario("a"), bad_scenario(), good_scenario("c")],
                resolver=resolver,
            )

        assert [run.label for run in batch.runs] == ["0 - a", "2 - c"]
        assert list(batch.errors) == ["1 - bad"]
        assert "Nonexistent" in batch.errors["1 - bad"]
        assert "VmAllocationPolicy" in batch.errors["1 - bad"]
        assert any("1 - bad" in r.getMessage() for r in caplog.records)
        assert not batch.ok

    def test_fresh_engine_per_scenario(self, resolver):
        batch = run_batch([good_scenario(), good_scenario()], resolver=resolver,
                          engine_factory=RecordingEngine)

        assert len(RecordingEngine.instances) == 2
        assert all(engine.started for engine in RecordingEngine.instances)
        assert all(run.simulated for run in batch.runs)

    def test_empty_batch(self, resolver):
        batch = run_batch([], resolver=resolver)

        assert batch.is_empty
        assert not batch.ok
        assert "Nothing to build" in batch.summary

    def test_summary(self, resolver):
        batch = run_batch([good_scenario(), bad_scenario()], source="x.yaml", resolver=resolver)
        summary = batch.summary

        assert "Built" in summary
        assert "Errors" in summary
        assert "1 - x.yaml" in summary

    def test_run_file(self, tmp_path, resolver):
        path = tmp_path / "scenario.yaml"
        path.write_text(GOOD_YAML)

        batch = run_file(path, resolver=resolver)

        assert batch.ok
        assert batch.source == "scenario.yaml"
        assert len(batch.runs[0].hosts) == 1

    def test_run_empty_file(self, tmp_path, resolver):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert run_file(path, resolver=resolver).is_empty


class TestReportWriter:
    """Tests for report output."""

    def test_writes_report(self, tmp_path, resolver):
        batch = run_batch([good_scenario(), bad_scenario()], source="demo.yaml",
                          resolver=resolver)
        out = tmp_path / "reports"

        ReportWriter(out).write(batch)

        report = json.loads((out / "report.json").read_text())
        assert len(report["runs"]) == 1
        assert "1 - demo.yaml" in report["errors"]
        assert "demo.yaml" in (out / "summary.md").read_text()

        run_dir = out / safe_name("0 - demo.yaml")
        with open(run_dir / "vms.csv", newline="") as f:
            vms = list(csv.DictReader(f))
        with open(run_dir / "workloads.csv", newline="") as f:
            workloads = list(csv.DictReader(f))
        assert len(vms) == 4
        assert vms[0]["broker"] == "customer1"
        assert len(workloads) == 6

    def test_workloads_csv_has_binding(self, tmp_path, resolver):
        runner = ScenarioRunner(good_scenario(), label="bound", resolver=resolver)
        runner.engine = BindingEngine(runner.datacenters)
        batch = BatchResult(runs=[runner.run()], source="bound.yaml")

        ReportWriter(tmp_path).write(batch)

        with open(tmp_path / "bound" / "workloads.csv", newline="") as f:
            rows = list(csv.DictReader(f))
        assert [(r["broker"], r["id"], r["vm"], r["host"]) for r in rows[:3]] == [
            ("customer1", "1", "", ""),
            ("customer1", "2", "2", "2"),
            ("customer1", "3", "1", "1"),
        ]

    def test_safe_name(self):
        assert safe_name("0 - a/b.yaml") == "0_-_a_b.yaml"


class TestCli:
    """Tests for the command-line entry point."""

    def test_success(self, tmp_path, capsys):
        path = tmp_path / "ok.yaml"
        path.write_text(GOOD_YAML)

        assert main([str(path), "--no-color"]) == 0
        assert "0 - ok.yaml" in capsys.readouterr().out

    def test_suppress(self, tmp_path, capsys):
        path = tmp_path / "ok.yaml"
        path.write_text(GOOD_YAML)

        assert main([str(path), "-s", "--no-color"]) == 0
        assert "Datacenters" not in capsys.readouterr().out

    def test_empty_file_fails(self, tmp_path, capsys):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert main([str(path), "--no-color"]) == 1
        assert "nothing to build" in capsys.readouterr().err

    def test_missing_file_continues(self, tmp_path, capsys):
        good = tmp_path / "ok.yaml"
        good.write_text(GOOD_YAML)

        assert main([str(tmp_path / "missing.yaml"), str(good), "--no-color"]) == 1
        captured = capsys.readouterr()
        assert "not found" in captured.err
        assert "0 - ok.yaml" in captured.out

    def test_failed_scenario(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"datacenters": [{"vmAllocationPolicy": "Nope"}]}))
        assert main([str(path), "--no-color"]) == 1

    def test_engine_option(self, tmp_path):
        path = tmp_path / "ok.yaml"
        path.write_text(GOOD_YAML)

        assert main([str(path), "-s", "--no-color", "--engine", f"{__name__}.RecordingEngine"]) == 0
        assert len(RecordingEngine.instances) == 1
        assert RecordingEngine.instances[0].started

    def test_bad_engine(self, tmp_path, capsys):
        path = tmp_path / "ok.yaml"
        path.write_text(GOOD_YAML)

        assert main([str(path), "--engine", "no_such_module.Engine"]) == 1
        assert "Cannot load engine" in capsys.readouterr().err

    def test_engine_not_callable(self, tmp_path, capsys):
        path = tmp_path / "ok.yaml"
        path.write_text(GOOD_YAML)

        assert main([str(path), "--engine", "cloudsim_scenario.runner.VERSION"]) == 1
        assert "Cannot load engine" in capsys.readouterr().err

    def test_engine_kept_out_of_policy_registry(self, tmp_path):
        path = tmp_path / "ok.yaml"
        path.write_text(GOOD_YAML)
        engine_path = f"{__name__}.RecordingEngine"

        assert main([str(path), "-s", "--no-color", "--engine", engine_path]) == 0
        assert engine_path not in DEFAULT_REGISTRY

    def test_output_dir(self, tmp_path):
        path = tmp_path / "ok.yaml"
        path.write_text(GOOD_YAML)
        out = tmp_path / "reports"

        assert main([str(path), "-s", "--no-color", "--output-dir", str(out)]) == 0
        assert (out / "ok" / "report.json").exists()
        assert (out / "ok" / safe_name("0 - ok.yaml") / "vms.csv").exists()


class TestExampleScenarios:
    """The bundled example files build without errors."""

    EXAMPLES = Path(__file__).resolve().parent.parent / "scenarios"

    def test_yaml_example(self, resolver):
        batch = run_file(self.EXAMPLES / "example.yaml", resolver=resolver)

        assert batch.ok
        first, second = batch.runs
        assert len(first.hosts) == 8
        assert len(first.vms()) == 8
        assert len(first.workloads()) == 16
        assert [h.id for h in second.hosts] == [100]

    def test_jsonc_example(self, resolver):
        batch = run_file(self.EXAMPLES / "example.jsonc", resolver=resolver)

        assert batch.ok
        assert len(batch.runs[0].hosts) == 2
