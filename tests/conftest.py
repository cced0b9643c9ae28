"""
Top-level pytest configuration for keyvfs.

Collects fixtures and constants that are needed across multiple test modules. Storing them here in the top-level ensures
that the imports work correctly.

No real S3 is used: the store is the in-memory FakeKeyStore from tests/helpers.
"""

import os

import pytest

from keyvfs.transfer_engine import ConcurrentTransferEngine
from tests.helpers.fake_key_store import FakeKeyStore

KEYVFS_ENV_VARS = [
    "S3_CONCURRENCY",
    "S3_ENDPOINT_URL",
    "S3_MAX_KEY_LENGTH",
    "KEYVFS_S3_ACCESS_KEY",
    "KEYVFS_S3_SECRET_KEY",
]


@pytest.fixture(scope="session")
def CONSTANTS():
    return {
        "BUCKET": "test-bucket",
        "PREFIX": "p/",
        "LOCATION": "s3://test-bucket/p/",
        # small enough that files of a few hundred bytes are split into many chunks
        "SMALL_MAX_KEY_LENGTH": 30,
    }


@pytest.fixture(autouse=True)
def isolated_environ(monkeypatch, tmp_path):
    """
    To avoid test pollution, each test gets its own copy of the environment (loading a .env file writes to it),
    without any of the keyvfs variables a developer might have exported, and runs in an empty directory
    so no local .env file is picked up.
    """
    environ = os.environ.copy()
    for name in KEYVFS_ENV_VARS:
        environ.pop(name, None)
    monkeypatch.setattr(os, "environ", environ)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def fake_store() -> FakeKeyStore:
    return FakeKeyStore()


@pytest.fixture
def engine() -> ConcurrentTransferEngine:
    return ConcurrentTransferEngine(concurrency=4)


@pytest.fixture
def make_file(tmp_path):
    """Factory fixture to write some bytes to a file in the test's temporary directory."""

    def _make_file(content: bytes, name: str = "source.bin"):
        file_path = tmp_path / "inputs" / name
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(content)
        return file_path

    return _make_file
