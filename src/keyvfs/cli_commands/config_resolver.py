"""
Functions that resolve for the CLI commands things like:
    - which concurrency ceiling to use
    - which S3 endpoint to talk to
Based on provided user input and the environment, then build the store and engine from them.
"""

from dataclasses import dataclass

from keyvfs.cli_config import KeyVFSCLISettings, load_cli_settings
from keyvfs.s3_client import S3KeyStore, create_s3_key_store
from keyvfs.transfer_engine import ConcurrentTransferEngine


@dataclass
class TransferSetup:
    """Everything a transfer command needs, resolved once before any work starts."""

    store: S3KeyStore
    engine: ConcurrentTransferEngine
    max_key_length: int


def resolve_concurrency(concurrency: int | None, settings: KeyVFSCLISettings) -> int:
    """
    Priority given to the '--concurrency' option, then the S3_CONCURRENCY environment variable (default 8).
    A non-positive option value falls back in the same way.
    """
    if concurrency is not None and concurrency > 0:
        return concurrency
    return settings.CONCURRENCY


def resolve_endpoint_url(endpoint_url: str | None, settings: KeyVFSCLISettings) -> str | None:
    """Priority given to the '--endpoint-url' option, then S3_ENDPOINT_URL, otherwise the AWS default (None)."""
    return endpoint_url or settings.S3_ENDPOINT_URL


def resolve_transfer_setup(concurrency: int | None, endpoint_url: str | None) -> TransferSetup:
    """Build the S3 key store and transfer engine for a CLI command."""
    settings = load_cli_settings()
    resolved_concurrency = resolve_concurrency(concurrency=concurrency, settings=settings)

    store = create_s3_key_store(
        url=resolve_endpoint_url(endpoint_url=endpoint_url, settings=settings),
        # boto3's connection pool should not be the bottleneck for the threads.
        max_pool_connections=max(10, resolved_concurrency),
    )
    return TransferSetup(
        store=store,
        engine=ConcurrentTransferEngine(concurrency=resolved_concurrency),
        max_key_length=settings.MAX_KEY_LENGTH,
    )
