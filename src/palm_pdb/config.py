"""
pdbdump Configuration
=====================

Default settings for the dump tool. Configuration can come from:
- Default values (defined here)
- Environment variables
- Command-line options (which override both)

Environment variables (all optional):
    PDBDUMP_ENCODING: Default source encoding name (e.g. "cp1252")
    PDBDUMP_VERBOSE: Enable debug logging ("1", "true", "yes")

Copyright (c) 2026 palm-pdb Contributors
"""

from dataclasses import dataclass
import os


_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class DumpConfig:
    """
    Configuration for pdbdump.

    Attributes:
        encoding: Source encoding name used when -e is not given
        verbose: Enable debug logging
    """
    encoding: str = "none"
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "DumpConfig":
        """Create DumpConfig from environment variables."""
        config = cls()

        if encoding := os.environ.get("PDBDUMP_ENCODING"):
            config.encoding = encoding

        if verbose := os.environ.get("PDBDUMP_VERBOSE"):
            config.verbose = verbose.strip().lower() in _TRUE_VALUES

        return config
