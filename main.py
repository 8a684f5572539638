#!/usr/bin/env python3
"""
Code Property Graph Extractor - Main Entry Point

Turns source code into a labeled property graph of projects, files,
namespaces, types, operations, variables and metrics.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from codelpg.cli import main

if __name__ == "__main__":
    main()
