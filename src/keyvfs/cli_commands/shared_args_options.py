"""
To avoid potential problems with circular imports, we can put shared typer args + options (etc...) here

If you have something that is only used in one of the cli subcommands, don't move it here.
"""

import typer

LOCATION_ARGUMENT = typer.Argument(
    ...,
    help="Where the file's keys live, in the form s3://bucket/prefix/",
    show_default=False,
)

CONCURRENCY_OPTION = typer.Option(
    None,
    "--concurrency",
    "-c",
    help="Maximum number of chunks transferred at the same time. "
    "If not provided uses the S3_CONCURRENCY environment variable, or 8.",
    show_default=False,
)

ENDPOINT_URL_OPTION = typer.Option(
    None,
    "--endpoint-url",
    help="Custom S3 endpoint (e.g. a MinIO server). If not provided uses the S3_ENDPOINT_URL environment variable.",
    show_default=False,
)

FORMAT_AS_TSV_OPTION = typer.Option(
    False,
    "--tsv",
    help="If set, will print the output in .TSV format for easier programmatic parsing.",
)
