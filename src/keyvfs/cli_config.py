"""
Settings for the keyvfs CLI.

Settings are resolved by each command when it builds its store and engine
(resolve_transfer_setup in keyvfs.cli_commands.config_resolver calls load_cli_settings()),
so they reflect the environment and .env file at the time the command runs.
The core (codec, engine, services) never reads these, the CLI passes the resolved values in.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import dotenv

from keyvfs.key_codec import S3_MAX_KEY_LENGTH
from keyvfs.transfer_engine import DEFAULT_CONCURRENCY

logger = logging.getLogger(__name__)

DEFAULT_DOTENV_PATH = Path(".env")


def load_dotenv_file(dotenv_path: Path = DEFAULT_DOTENV_PATH) -> bool:
    """
    Load environment variables from a .env file if there is one.
    Variables already set in the environment win over the file.
    """
    if not dotenv_path.exists():
        return False
    dotenv.load_dotenv(dotenv_path=dotenv_path, override=False)
    logger.debug(f"Loaded environment variables from {dotenv_path}")
    return True


def positive_int_from_env(name: str, default: int) -> int:
    """
    Read a positive integer from an environment variable.
    Falls back to 'default' when the variable is unset, not an integer, zero or negative.
    """
    value = os.getenv(name)
    if not value:
        return default
    try:
        number = int(value)
    except ValueError:
        logger.warning(f"Ignoring {name}='{value}' as it is not an integer, using {default}.")
        return default
    if number <= 0:
        logger.warning(f"Ignoring {name}='{value}' as it is not positive, using {default}.")
        return default
    return number


@dataclass
class KeyVFSCLISettings:
    """
    Settings for the keyvfs CLI.
    NOTE: Do not create an instance of this class yourself, use load_cli_settings().

    For most users the defaults are fine, S3 credentials come from the normal AWS credential chain.
    """

    CONCURRENCY: int
    S3_ENDPOINT_URL: str | None
    MAX_KEY_LENGTH: int


def load_cli_settings() -> KeyVFSCLISettings:
    """Resolve the settings from the environment (and a .env file in the working directory, if present)."""
    load_dotenv_file()
    return KeyVFSCLISettings(
        CONCURRENCY=positive_int_from_env("S3_CONCURRENCY", DEFAULT_CONCURRENCY),
        S3_ENDPOINT_URL=os.getenv("S3_ENDPOINT_URL") or None,
        MAX_KEY_LENGTH=positive_int_from_env("S3_MAX_KEY_LENGTH", S3_MAX_KEY_LENGTH),
    )

