"""
Unified CLI Error Handling
==========================

Provides consistent error reporting and exit codes for the CLI tools.
"""

import sys
import traceback
from enum import IntEnum
from typing import NoReturn

import click


class ExitCode(IntEnum):
    """Standard exit codes for CLI tools."""
    SUCCESS = 0
    DUMP_ERROR = 1       # A database could not be read or decoded
    INVALID_ARGS = 2     # Invalid arguments or unknown encoding
    INTERNAL_ERROR = 3   # Unexpected internal error


def report_error(error: Exception, context: str = "") -> None:
    """Print a library error to stderr, prefixed with ``context``."""
    prefix = f"{context}: " if context else ""
    click.echo(f"Error: {prefix}{error}", err=True)


def handle_cli_exception(error: Exception, verbose: bool = False) -> NoReturn:
    """
    Unified exception handler for the CLI tools.

    Formats the error message, optionally prints the traceback in verbose
    mode for internal errors, and exits with the matching exit code.

    Raises:
        SystemExit: Always
    """
    from palm_pdb.errors import PalmDBError, UnknownEncodingError

    if isinstance(error, UnknownEncodingError):
        report_error(error)
        sys.exit(ExitCode.INVALID_ARGS)

    elif isinstance(error, PalmDBError):
        report_error(error)
        sys.exit(ExitCode.DUMP_ERROR)

    elif isinstance(error, click.BadParameter):
        report_error(error)
        sys.exit(ExitCode.INVALID_ARGS)

    else:
        click.echo(f"Internal error: {error}", err=True)
        if verbose:
            traceback.print_exc()
        sys.exit(ExitCode.INTERNAL_ERROR)
