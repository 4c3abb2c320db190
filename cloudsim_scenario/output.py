"""
Output management for scenario batch results.

Provides structured directory output with:
- report.json: Full batch report (every run plus errors)
- summary.md: Human-readable batch and per-scenario summaries
- <label>/vms.csv, <label>/workloads.csv: Per-scenario entity tables
"""

import csv
from pathlib import Path
from typing import Any, Dict, List, Union
import json
import logging

from .runner import BatchResult, ScenarioRun

logger = logging.getLogger(__name__)

VM_COLUMNS = ['id', 'broker', 'mips', 'pes', 'ram', 'bw', 'size', 'workload_scheduler']
WORKLOAD_COLUMNS = [
    'id', 'broker', 'length', 'pes', 'file_size', 'output_size',
    'utilization_model_cpu', 'utilization_model_ram', 'utilization_model_bw',
    'vm', 'host',
]


def safe_name(label: str) -> str:
    """Turn a run label into a directory name."""
    return label.replace(' ', '_').replace('/', '_').replace('\\', '_')


class ReportWriter:
    """
    Write batch results to a structured directory.

    Output structure:
        output_dir/
            report.json
            summary.md
            0_-_basic.yaml/
                vms.csv
                workloads.csv
    """

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)

    def write(self, batch: BatchResult) -> Path:
        """
        Write all output files.

        Returns:
            The output directory
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._write_report(batch)
        self._write_summary(batch)
        for run in batch.runs:
            self._write_run(run)
        logger.debug("Wrote %d scenario reports to %s", len(batch.runs), self.output_dir)
        return self.output_dir

    def _write_report(self, batch: BatchResult) -> None:
        with open(self.output_dir / 'report.json', 'w') as f:
            json.dump(batch.to_dict(), f, indent=2, default=str)

    def _write_summary(self, batch: BatchResult) -> None:
        parts = [batch.summary]
        parts.extend(run.summary for run in batch.runs)
        with open(self.output_dir / 'summary.md', 'w') as f:
            f.write("\n\n".join(parts))
            f.write("\n")

    def _write_run(self, run: ScenarioRun) -> None:
        run_dir = self.output_dir / safe_name(run.label)
        run_dir.mkdir(exist_ok=True)
        self._write_csv(run_dir / 'vms.csv', VM_COLUMNS, run.vm_rows())
        self._write_csv(run_dir / 'workloads.csv', WORKLOAD_COLUMNS, run.workload_rows())

    @staticmethod
    def _write_csv(path: Path, columns: List[str], rows: List[Dict[str, Any]]) -> None:
        with open(path, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=columns)
            writer.writeheader()
            writer.writerows(rows)
