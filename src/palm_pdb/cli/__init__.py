"""
palm_pdb Command-Line Interface
===============================

This package provides command-line tools for palm_pdb:

- **pdbdump**: Inspect PDB headers, record lists and PalmDoc text

Each tool is implemented as a Click-based CLI application.
"""

__all__ = ["pdbdump"]
