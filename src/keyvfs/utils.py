"""Collection of utility functions for the keyvfs CLI that haven't found a better home"""

import csv
import sys
from contextlib import contextmanager
from typing import Callable, Iterator

import typer
from rich import print
from rich.markup import escape
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from keyvfs.exceptions import KeyVFSError


def format_file_size(size_bytes: int | float | None) -> str:
    """
    Converts a file size in bytes to a human-readable format.

    Uses powers of 1000 so KB, MB, GB, TB and not 1024 KiB, MiB, GiB, TiB.
    """
    if size_bytes is None:
        return "N/A"
    if size_bytes == 0:
        return "0 B"
    power = 1000
    n = 0
    power_labels = {0: "", 1: "K", 2: "M", 3: "G", 4: "T"}
    while size_bytes >= power and n < len(power_labels) - 1:
        size_bytes /= power
        n += 1
    return f"{size_bytes:.2f} {power_labels[n]}B"


def print_rich_table_as_tsv(table: Table) -> None:
    """
    Helper function to print a rich Table as a TSV file to standard output.

    This is useful for CLI commands that want to offer both rich table output
    for human users as well as TSV output for programmatic parsing.
    """
    writer = csv.writer(sys.stdout, delimiter="\t")

    headers = [str(col.header) for col in table.columns]
    writer.writerow(headers)

    columns_data = [col._cells for col in table.columns]

    num_rows = len(columns_data[0]) if columns_data else 0
    for row_index in range(num_rows):
        row = [str(columns_data[col_index][row_index]) for col_index in range(len(columns_data))]
        writer.writerow(row)


@contextmanager
def transfer_progress(description: str) -> Iterator[Callable[[int, int], None]]:
    """
    Show a progress bar while a transfer runs.
    Yields a (finished, total) callback that can be passed to the service layer.
    """
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        transient=True,
    ) as progress:
        task_id = progress.add_task(description, total=None)

        def update(finished: int, total: int) -> None:
            progress.update(task_id, completed=finished, total=total)

        yield update


@contextmanager
def exit_on_keyvfs_error() -> Iterator[None]:
    """
    Print keyvfs errors as a readable message and exit with code 1 instead of showing a traceback.
    Anything else is a bug and is left to propagate.
    """
    try:
        yield
    except KeyVFSError as err:
        print(f"[red]ERROR: {escape(str(err))}[/red]")
        raise typer.Exit(1) from err
