"""
Main entry point for building scenarios.

Usage:
    python -m cloudsim_scenario scenarios/basic.yaml
    python -m cloudsim_scenario scenarios/*.yaml --output-dir reports/
"""

import sys

from .cli import main


if __name__ == "__main__":
    sys.exit(main())
