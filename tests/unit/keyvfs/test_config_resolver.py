import os
from unittest.mock import patch

import pytest

from keyvfs.cli_config import KeyVFSCLISettings
from keyvfs.cli_commands.config_resolver import resolve_concurrency, resolve_endpoint_url, resolve_transfer_setup


@pytest.fixture
def settings() -> KeyVFSCLISettings:
    return KeyVFSCLISettings(CONCURRENCY=8, S3_ENDPOINT_URL="http://from-env:9000", MAX_KEY_LENGTH=1024)


@pytest.mark.parametrize("option, expected", [(None, 8), (3, 3), (0, 8), (-1, 8), (64, 64)])
def test_resolve_concurrency(settings, option, expected):
    """The --concurrency option wins when it is positive, otherwise the setting is used."""
    assert resolve_concurrency(concurrency=option, settings=settings) == expected


def test_resolve_endpoint_url_option_wins(settings):
    assert resolve_endpoint_url(endpoint_url="http://option:9000", settings=settings) == "http://option:9000"


def test_resolve_endpoint_url_falls_back_to_setting(settings):
    assert resolve_endpoint_url(endpoint_url=None, settings=settings) == "http://from-env:9000"


def test_resolve_transfer_setup():
    os.environ["S3_CONCURRENCY"] = "4"
    os.environ["S3_MAX_KEY_LENGTH"] = "512"

    with patch("keyvfs.cli_commands.config_resolver.create_s3_key_store") as mock_create_store:
        setup = resolve_transfer_setup(concurrency=None, endpoint_url="http://localhost:9000")

    assert setup.engine.concurrency == 4
    assert setup.max_key_length == 512
    assert setup.store is mock_create_store.return_value
    mock_create_store.assert_called_once_with(url="http://localhost:9000", max_pool_connections=10)


def test_resolve_transfer_setup_pool_grows_with_concurrency():
    with patch("keyvfs.cli_commands.config_resolver.create_s3_key_store") as mock_create_store:
        setup = resolve_transfer_setup(concurrency=50, endpoint_url=None)

    assert setup.engine.concurrency == 50
    mock_create_store.assert_called_once_with(url=None, max_pool_connections=50)


def test_resolve_transfer_setup_reads_settings_on_every_call():
    """Settings are not cached between commands, a changed environment is picked up by the next command."""
    with patch("keyvfs.cli_commands.config_resolver.create_s3_key_store"):
        os.environ["S3_CONCURRENCY"] = "2"
        first_setup = resolve_transfer_setup(concurrency=None, endpoint_url=None)
        os.environ["S3_CONCURRENCY"] = "6"
        second_setup = resolve_transfer_setup(concurrency=None, endpoint_url=None)

    assert first_setup.engine.concurrency == 2
    assert second_setup.engine.concurrency == 6
