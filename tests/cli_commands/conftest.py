"""
Setup for pytest fixtures for testing the CLI commands.

resolve_transfer_setup is patched in all tests so the commands run against the in-memory FakeKeyStore,
it is autoused, so it does not need to be specified in each test.
"""

from unittest.mock import patch

import pytest

from keyvfs.cli_commands.config_resolver import TransferSetup
from keyvfs.transfer_engine import ConcurrentTransferEngine


@pytest.fixture(autouse=True)
def patched_transfer_setup(fake_store, CONSTANTS):
    """
    Yields the mock of resolve_transfer_setup so tests can check which options were passed through.
    Keys are kept small so that even short test files are split into several chunks.
    """
    setup = TransferSetup(
        store=fake_store,
        engine=ConcurrentTransferEngine(concurrency=2),
        max_key_length=CONSTANTS["SMALL_MAX_KEY_LENGTH"],
    )
    with patch("keyvfs.cli_commands.chunk_cli.resolve_transfer_setup", return_value=setup) as mock_resolve:
        yield mock_resolve
