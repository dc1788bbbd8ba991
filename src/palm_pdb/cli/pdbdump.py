"""
pdbdump - Palm Database Dump Tool
=================================

This module implements the command-line interface for inspecting Palm OS
Database files.

Options
-------
- **-e ENC**: Source text encoding (``-e ?`` lists the known encodings)
- **-s**: Print the database header
- **-l**: Print the record descriptor list
- **-t**: Print the PalmDoc text header
- **-r NUM**: Write record NUM to standard output
- **-d**: Decompress the record selected with -r

Usage Examples
--------------
Show header and record list:
    $ pdbdump -s -l book.pdb

Dump the first text record as UTF-8 text:
    $ pdbdump -e cp1252 -r 1 -d book.pdb

List encodings:
    $ pdbdump -e ?

Copyright (c) 2026 palm-pdb Contributors
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from palm_pdb import __version__
from palm_pdb.cli.errors import ExitCode, handle_cli_exception, report_error
from palm_pdb.config import DumpConfig
from palm_pdb.encoding import TextEncoding, list_encodings, lookup_encoding
from palm_pdb.errors import PalmDBError, UnknownEncodingError
from palm_pdb.pdb import (
    Compression,
    PalmDatabase,
    PDBHeader,
    TextHeader,
    palm_time_to_datetime,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Formatting
# =============================================================================

def _format_time(value: int) -> str:
    if value == 0:
        return "never"
    try:
        return palm_time_to_datetime(value).strftime("%a %b %d %H:%M:%S %Y")
    except (OverflowError, OSError, ValueError):
        return f"invalid ({value})"


def format_header(header: PDBHeader) -> list[str]:
    """Render the database header as aligned ``label: value`` lines."""
    flags = header.file_flags
    flag_names = ", ".join(f.name.lower() for f in type(flags) if f in flags)
    return [
        f"name:                {header.display_name}",
        f"file attributes:     0x{header.file_attributes:04X}"
        + (f" ({flag_names})" if flag_names else ""),
        f"version:             {header.version}",
        f"creation date:       {_format_time(header.creation_date)}",
        f"modification date:   {_format_time(header.modification_date)}",
        f"last backup date:    {_format_time(header.last_backup_date)}",
        f"modification number: {header.modification_number}",
        f"app info area:       {header.app_info_area}",
        f"sort info area:      {header.sort_info_area}",
        f"database type:       {header.database_type}",
        f"creator id:          {header.creator_id}",
        f"unique id seed:      {header.unique_id_seed}",
        f"next record list id: {header.next_record_list_id}",
        f"number of records:   {header.number_of_records}",
    ]


def format_record_list(db: PalmDatabase) -> list[str]:
    """Render the record descriptor table, one block per record."""
    lines = []
    for index, record in enumerate(db.records):
        flags = record.flags
        flag_names = ", ".join(f.name.lower() for f in type(flags) if f in flags)
        lines.append(f"record {index}:")
        lines.append(f"  offset:     0x{record.offset:X}")
        lines.append(
            f"  attributes: 0x{record.attributes:02X}"
            + (f" ({flag_names})" if flag_names else "")
        )
        lines.append(f"  unique id:  0x{record.unique_id:06X}")
    return lines


def format_text_header(header: TextHeader) -> list[str]:
    """Render the PalmDoc text header."""
    if isinstance(header.compression, Compression):
        compression = f"{int(header.compression)} ({header.compression.get_description()})"
    else:
        compression = f"{header.compression} (unknown)"
    return [
        f"compression:   {compression}",
        f"reserved:      {header.reserved}",
        f"text size:     {header.text_size}",
        f"record count:  {header.record_count}",
        f"record size:   {header.record_size}",
        f"cur position:  {header.cur_position}",
    ]


def _echo_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)
    click.echo()


# =============================================================================
# Encoding Option
# =============================================================================

def _print_encodings(err: bool = False) -> None:
    click.echo("Available input encodings:", err=err)
    for name in list_encodings():
        click.echo(f"  {name}", err=err)


def _resolve_encoding(name: str) -> TextEncoding:
    if name == "?":
        _print_encodings()
        sys.exit(ExitCode.SUCCESS)
    try:
        return lookup_encoding(name)
    except UnknownEncodingError as e:
        report_error(e)
        _print_encodings(err=True)
        sys.exit(ExitCode.INVALID_ARGS)


# =============================================================================
# Per-file Processing
# =============================================================================

def dump_file(
    path: Path,
    encoding: TextEncoding,
    show_header: bool,
    show_record_list: bool,
    show_text_header: bool,
    record: Optional[int],
    decompress: bool,
) -> bool:
    """
    Dump one database. Returns True on success.

    Library errors are reported to stderr and do not stop the caller from
    moving on to the next file.
    """
    try:
        db = PalmDatabase.open(path)
    except PalmDBError as e:
        report_error(e, f"can't open file '{path}'")
        return False

    ok = True
    with db:
        try:
            db.set_encoding(encoding)
        except PalmDBError as e:
            report_error(e, str(path))
            return False

        if show_header or show_record_list or show_text_header:
            click.echo(f"{path.name}:\n")

        if show_header:
            click.echo("***** pdb header *****")
            _echo_lines(format_header(db.header))

        if show_record_list:
            click.echo("***** pdb record list *****")
            _echo_lines(format_record_list(db))

        if show_text_header:
            click.echo("***** pdb text header *****")
            try:
                _echo_lines(format_text_header(db.read_text_header()))
            except PalmDBError as e:
                report_error(e, "failed to read text header")
                ok = False

        if record is not None:
            try:
                buf = db.load_record(record)
                if decompress:
                    compression = db.read_text_header().compression
                    buf = db.decompress(buf, compression)
            except PalmDBError as e:
                action = "decompress" if decompress else "load"
                report_error(e, f"failed to {action} record nr. {record}")
                ok = False
            else:
                sys.stdout.flush()
                sys.stdout.buffer.write(buf.payload)
                sys.stdout.buffer.flush()

    return ok


# =============================================================================
# Main Command
# =============================================================================

@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument(
    "files",
    nargs=-1,
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.option(
    "-e", "--encoding",
    "encoding_name",
    default=None,
    metavar="ENC",
    help="Source text encoding ('-e ?' lists encodings)",
)
@click.option("-s", "--header", "show_header", is_flag=True, help="Print database header")
@click.option("-l", "--list", "show_record_list", is_flag=True, help="Print record list")
@click.option("-t", "--text-header", "show_text_header", is_flag=True,
              help="Print PalmDoc text header")
@click.option("-r", "--record", type=click.IntRange(min=0), default=None,
              metavar="NUM", help="Write record NUM to standard output")
@click.option("-d", "--decompress", is_flag=True, help="Decompress the record given by -r")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.version_option(__version__, "--version", "-V", prog_name="pdbdump")
def main(
    files: tuple[Path, ...],
    encoding_name: Optional[str],
    show_header: bool,
    show_record_list: bool,
    show_text_header: bool,
    record: Optional[int],
    decompress: bool,
    verbose: bool,
) -> None:
    """
    Dump Palm OS Database (.pdb) files.

    \b
    Examples:
      pdbdump -s -l book.pdb
      pdbdump -t book.pdb
      pdbdump -e cp1252 -r 1 -d book.pdb
      pdbdump -e ?
    """
    config = DumpConfig.from_env()
    verbose = verbose or config.verbose

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
    )

    failures = 0
    try:
        encoding = _resolve_encoding(encoding_name or config.encoding)

        if not files:
            click.echo("No input file.", err=True)
            sys.exit(ExitCode.INVALID_ARGS)

        if decompress and record is None:
            raise click.BadParameter("-d requires -r NUM", param_hint="'-d'")

        for path in files:
            if not dump_file(path, encoding, show_header, show_record_list,
                             show_text_header, record, decompress):
                failures += 1
    except click.BadParameter as e:
        handle_cli_exception(e, verbose)
    except PalmDBError as e:
        handle_cli_exception(e, verbose)

    if failures:
        logger.debug(f"{failures} of {len(files)} file(s) failed")
        sys.exit(ExitCode.DUMP_ERROR)


if __name__ == "__main__":
    main()
