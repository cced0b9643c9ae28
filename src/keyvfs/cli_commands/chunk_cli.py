"""
Command line interface for encoding a file into S3 key names, restoring it and deleting it again.
"""

from pathlib import Path

import typer
from rich import print
from rich.console import Console
from rich.table import Table
from typing_extensions import Annotated

from keyvfs.cli_commands.shared_args_options import (
    CONCURRENCY_OPTION,
    ENDPOINT_URL_OPTION,
    FORMAT_AS_TSV_OPTION,
    LOCATION_ARGUMENT,
)
from keyvfs.cli_commands.config_resolver import resolve_transfer_setup
from keyvfs.services import (
    delete_namespace_command,
    encode_file_command,
    namespace_info_command,
    restore_file_command,
)
from keyvfs.utils import exit_on_keyvfs_error, format_file_size, print_rich_table_as_tsv, transfer_progress


def encode_file(
    input_file: Path = typer.Argument(..., help="Local file to encode.", show_default=False),
    location: str = LOCATION_ARGUMENT,
    force: Annotated[
        bool,
        typer.Option("--force", help="Replace any keys already stored under the location instead of failing."),
    ] = False,
    concurrency: int | None = CONCURRENCY_OPTION,
    endpoint_url: str | None = ENDPOINT_URL_OPTION,
):
    """
    Encode a file into the names of empty objects under an S3 location.
    """
    with exit_on_keyvfs_error():
        setup = resolve_transfer_setup(concurrency=concurrency, endpoint_url=endpoint_url)
        with transfer_progress("Uploading") as progress:
            result = encode_file_command(
                store=setup.store,
                engine=setup.engine,
                input_path=input_file,
                location=location,
                force=force,
                max_key_length=setup.max_key_length,
                progress=progress,
            )

    if result.replaced_keys:
        print(f"Replaced {result.replaced_keys} existing key(s).")
    print(
        f"Uploaded {result.uploaded_keys} key(s) for '{input_file}' ({format_file_size(result.file_size)}) "
        f"to '{result.namespace.location}'."
    )


def restore_file(
    location: str = LOCATION_ARGUMENT,
    output_file: Path = typer.Argument(..., help="Where to write the restored file.", show_default=False),
    concurrency: int | None = CONCURRENCY_OPTION,
    endpoint_url: str | None = ENDPOINT_URL_OPTION,
):
    """
    Restore a file from the keys stored under an S3 location.
    """
    with exit_on_keyvfs_error():
        setup = resolve_transfer_setup(concurrency=concurrency, endpoint_url=endpoint_url)
        with transfer_progress("Decoding") as progress:
            result = restore_file_command(
                store=setup.store,
                engine=setup.engine,
                location=location,
                output_path=output_file,
                progress=progress,
            )

    if result.skipped_foreign_keys:
        print(f"[yellow]Skipped {result.skipped_foreign_keys} key(s) that are not chunk keys.[/yellow]")
    if result.missing_indices:
        print(
            f"[yellow]WARNING: {len(result.missing_indices)} chunk(s) were missing, the restored file is incomplete.[/yellow]"
        )
    print(
        f"Restored {result.restored_chunks} chunk(s) ({format_file_size(result.bytes_written)}) "
        f"to '{result.output_path.resolve()}'."
    )


def delete_namespace(
    location: str = LOCATION_ARGUMENT,
    dry_run: bool = typer.Option(
        False, "--dry-run", help="If set, will not actually delete the keys, just print what would be deleted."
    ),
    endpoint_url: str | None = ENDPOINT_URL_OPTION,
):
    """
    Delete every key stored under an S3 location.

    'dry_run' mode will not actually delete the keys, just print what would be deleted.
    """
    with exit_on_keyvfs_error():
        setup = resolve_transfer_setup(concurrency=None, endpoint_url=endpoint_url)
        with transfer_progress("Deleting") as progress:
            result = delete_namespace_command(
                store=setup.store,
                location=location,
                dry_run=dry_run,
                progress=progress,
            )

    if dry_run:
        print("Dry run mode enabled. The following keys would have been deleted:")
        for key in result.listed_keys:
            print(f"- '{key}'")
        return

    print(f"Deleted {result.deleted_count} key(s) under '{result.namespace.location}'.")


def namespace_info(
    location: str = LOCATION_ARGUMENT,
    format_as_tsv: bool = FORMAT_AS_TSV_OPTION,
    endpoint_url: str | None = ENDPOINT_URL_OPTION,
):
    """
    Show what is stored under an S3 location: number of chunks, data size, and any gaps or duplicate chunks.
    """
    with exit_on_keyvfs_error():
        setup = resolve_transfer_setup(concurrency=None, endpoint_url=endpoint_url)
        info = namespace_info_command(store=setup.store, location=location)

    table = Table(title=f"Contents of '{info.namespace.location}'")
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    table.add_row("Chunk keys", str(info.chunk_count))
    table.add_row("Other keys", str(info.foreign_key_count))
    table.add_row("Data size", format_file_size(info.payload_bytes))
    table.add_row("Lowest index", str(info.lowest_index) if info.lowest_index is not None else "N/A")
    table.add_row("Highest index", str(info.highest_index) if info.highest_index is not None else "N/A")
    table.add_row("Duplicate indices", _summarise_indices(info.duplicate_indices))
    table.add_row("Missing indices", _summarise_indices(info.missing_indices))

    if format_as_tsv:
        print_rich_table_as_tsv(table)
    else:
        Console().print(table)


def _summarise_indices(indices: list[int], limit: int = 10) -> str:
    if not indices:
        return "none"
    shown = ", ".join(str(index) for index in indices[:limit])
    if len(indices) > limit:
        shown += f", ... ({len(indices)} total)"
    return shown
