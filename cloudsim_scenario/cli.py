"""
Command-line interface for building scenarios.

Usage:
    cloudsim-scenario scenarios/basic.yaml
    cloudsim-scenario scenarios/*.yaml --output-dir reports/
    cloudsim-scenario scenarios/basic.json -v --engine mysim.engine.Engine
    python -m cloudsim_scenario scenarios/basic.yaml -s
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

import yaml

from . import formatter as fmt
from .output import ReportWriter
from .registry import PolicyResolver, load_type
from .runner import BatchResult, SimulationEngine, run_batch
from .specs import load_scenarios


def _print_summary(text: str, use_color: bool) -> None:
    """Print summary with optional ANSI colorization."""
    print(fmt.colorize(text) if use_color else text)


def load_engine_factory(qualified_name: str) -> Callable[[], SimulationEngine]:
    """
    Return a factory creating one engine instance per call.

    Engine classes are loaded directly, outside the strategy registry.

    Raises:
        ImportError, AttributeError: If the class can't be loaded
        TypeError: If the loaded object is not callable
    """
    factory = load_type(qualified_name)
    if not callable(factory):
        raise TypeError(f"{qualified_name} is not callable")
    return factory


def run_scenario_file(
    path: Path,
    resolver: PolicyResolver,
    engine_factory: Optional[Callable[[], SimulationEngine]] = None,
    output_dir: Optional[Path] = None,
    suppress: bool = False,
    use_color: bool = False,
) -> bool:
    """
    Build every scenario of one file.

    Returns True when the file held scenarios and all of them were built.
    """
    try:
        scenarios = load_scenarios(path)
    except FileNotFoundError:
        print(f"Error: Scenario file not found: {path}", file=sys.stderr)
        return False
    except (OSError, yaml.YAMLError, ValueError) as e:
        print(f"Error: Invalid scenario file {path}: {e}", file=sys.stderr)
        return False

    batch: BatchResult = run_batch(
        scenarios, source=path.name, resolver=resolver, engine_factory=engine_factory,
    )

    if batch.is_empty:
        print(f"{path}: nothing to build", file=sys.stderr)
        return False

    if not suppress:
        for run in batch.runs:
            _print_summary(run.summary, use_color)
            print()
    _print_summary(batch.summary, use_color)

    if output_dir is not None:
        target = output_dir / path.stem
        ReportWriter(target).write(batch)
        print(f"Results saved to: {target}")

    return batch.ok


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Build cloud simulation scenarios from declarative files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s scenarios/basic.yaml
  %(prog)s scenarios/*.yaml --output-dir reports/
  %(prog)s scenarios/basic.json -s -v
  %(prog)s scenarios/basic.yaml --engine mysim.engine.Engine
        """,
    )

    parser.add_argument(
        "files",
        nargs="+",
        type=Path,
        help="Scenario file(s) (.yaml, .yml, .json, .jsonc)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "-s", "--suppress",
        action="store_true",
        help="Do not print per-scenario summaries",
    )
    parser.add_argument(
        "--engine",
        default=None,
        metavar="MODULE.CLASS",
        help="Simulation engine class; one instance is created per scenario",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for report.json, summary.md and per-scenario CSV files",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI colors",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    use_color = not args.no_color and fmt.supports_color()
    resolver = PolicyResolver()

    engine_factory = None
    if args.engine:
        try:
            engine_factory = load_engine_factory(args.engine)
        except (ImportError, AttributeError, TypeError) as e:
            print(f"Error: Cannot load engine '{args.engine}': {e}", file=sys.stderr)
            return 1

    all_ok = True
    for path in args.files:
        ok = run_scenario_file(
            path,
            resolver,
            engine_factory=engine_factory,
            output_dir=args.output_dir,
            suppress=args.suppress,
            use_color=use_color,
        )
        all_ok = all_ok and ok

    return 0 if all_ok else 1


if __name__ == "__main__":
    sys.exit(main())
