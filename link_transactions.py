#!/usr/bin/env python3
"""Transaction import and linking tool.

This is the main entry point script for the transaction linker.
It wraps the package CLI for convenient execution.

Usage:
    python link_transactions.py parse Retail.OrderHistory.1.csv --aggregate
    python link_transactions.py auto-link transactions.json --user u1

For full documentation and options:
    python link_transactions.py --help
"""

import sys
from pathlib import Path

# Add src to path for development installs
src_path = Path(__file__).parent / "src"
if src_path.exists():
    sys.path.insert(0, str(src_path))

from transaction_linker.cli import main

if __name__ == "__main__":
    sys.exit(main())
