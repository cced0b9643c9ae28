"""
The entry point for the keyvfs CLI tool that stores files in the key names of an S3 bucket.
"""

import logging
import sys

import typer

from keyvfs.cli_commands.chunk_cli import delete_namespace, encode_file, namespace_info, restore_file

logger = logging.getLogger(__name__)


app = typer.Typer(
    help="""
    This tool stores a file in the key names of empty S3 objects, in order to: \n
        - Encode a local file into keys under s3://bucket/prefix/. \n
        - Restore the file from those keys. \n
        - Delete the keys again, or inspect what is stored under a prefix.
    """,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def configure_logging(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
):
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        # boto's own debug output logs every request.
        for noisy_logger in ("boto3", "botocore", "urllib3"):
            logging.getLogger(noisy_logger).setLevel(logging.INFO)
        logger.debug("Debug logging enabled.")


app.command("encode")(encode_file)
app.command("restore")(restore_file)
app.command("delete")(delete_namespace)
app.command("info")(namespace_info)


def main():
    logging.basicConfig(level=logging.INFO, handlers=[logging.StreamHandler(sys.stdout)])
    logger.debug("Starting keyvfs CLI application.")
    app()


if __name__ == "__main__":
    main()
