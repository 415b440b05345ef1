#!/usr/bin/env python3
"""
Command line entry point for the constrained planning demo.

Usage:
    python -m manifold_planning [options]

Run with --help for the list of options.
"""

import sys

from .src.cli import main

if __name__ == "__main__":
    sys.exit(main())
