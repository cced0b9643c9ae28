"""
Turns chunks of a file into S3 key names and back again.

A chunk key looks like: <prefix><index>-<payload>
where the payload is the chunk's raw bytes encoded as URL-safe base64 without padding.
The object itself is always empty, all of the data lives in the key name.

S3 limits key names to 1024 bytes (UTF-8), so the chunk size is planned
from how much room the prefix leaves in a key.
"""

import base64
import binascii
import logging
import posixpath
import re
from dataclasses import dataclass

from keyvfs.exceptions import MalformedKeyError, PayloadDecodeError, SizingError

logger = logging.getLogger(__name__)

S3_MAX_KEY_LENGTH = 1024

# Room kept for the index ("999999") and the "-" separator in every key.
INDEX_FIELD_WIDTH = 6
INDEX_SEPARATOR = "-"
RESERVED_KEY_LENGTH = INDEX_FIELD_WIDTH + len(INDEX_SEPARATOR)
MAX_CHUNK_INDEX = 10**INDEX_FIELD_WIDTH - 1

_PAYLOAD_ALPHABET = re.compile(r"[A-Za-z0-9_-]*")


@dataclass(frozen=True)
class ListedChunk:
    """A chunk key found in a listing, split into its index and still encoded payload."""

    index: int
    encoded_payload: str
    key: str


def plan_chunk_size(prefix: str, max_key_length: int = S3_MAX_KEY_LENGTH) -> int:
    """
    Work out how many raw bytes of a file can be stored in each key under 'prefix'.

    base64 turns every 3 bytes into 4 characters, so the number of characters
    left over after the prefix, index and separator is scaled by 3/4 and rounded down.
    Rounding up would let a key go over the limit.
    """
    available = max_key_length - len(prefix.encode("utf-8")) - RESERVED_KEY_LENGTH
    if available <= 0:
        raise SizingError(
            f"The prefix '{prefix}' is too long to store any data in a key: "
            f"keys can be at most {max_key_length} bytes and {RESERVED_KEY_LENGTH} are needed for the chunk index."
        )

    chunk_size = (available * 3) // 4
    if chunk_size < 1:
        raise SizingError(
            f"The prefix '{prefix}' only leaves room for {available} payload character(s) in a key, "
            "which is not enough to store a single byte."
        )

    logger.debug(f"Planned chunk size of {chunk_size} bytes for prefix '{prefix}' ({available} characters available).")
    return chunk_size


def encode_payload(payload: bytes) -> str:
    """Encode raw bytes with the URL-safe base64 alphabet, without '=' padding."""
    return base64.urlsafe_b64encode(payload).decode("ascii").rstrip("=")


def decode_payload(encoded_payload: str, index: int) -> bytes:
    """
    Strict inverse of encode_payload.

    Characters outside the URL-safe alphabet, impossible lengths and non-canonical encodings
    (that would decode fine but never come out of encode_payload) all raise PayloadDecodeError.
    """
    if not _PAYLOAD_ALPHABET.fullmatch(encoded_payload):
        raise PayloadDecodeError(index=index, reason="it contains characters outside the URL-safe base64 alphabet.")

    padding = "=" * (-len(encoded_payload) % 4)
    try:
        payload = base64.urlsafe_b64decode(encoded_payload + padding)
    except (binascii.Error, ValueError) as err:
        raise PayloadDecodeError(index=index, reason=str(err)) from err

    if encode_payload(payload) != encoded_payload:
        raise PayloadDecodeError(index=index, reason="it is not in canonical base64 form.")
    return payload


def encode_key(index: int, payload: bytes, prefix: str, max_key_length: int = S3_MAX_KEY_LENGTH) -> str:
    """
    Build the S3 key for chunk 'index' (1-based) holding 'payload'.

    The path-style join means a prefix with or without a trailing "/" gives the same key.
    """
    if not 1 <= index <= MAX_CHUNK_INDEX:
        raise SizingError(f"Chunk index {index} can not be stored, indices must be between 1 and {MAX_CHUNK_INDEX}.")

    key = posixpath.join(prefix, f"{index}{INDEX_SEPARATOR}{encode_payload(payload)}")

    key_length = len(key.encode("utf-8"))
    if key_length > max_key_length:
        raise SizingError(
            f"The key for chunk {index} would be {key_length} bytes long, the limit is {max_key_length}. "
            "The chunk is larger than the planned chunk size for this prefix."
        )
    return key


def parse_key(key: str, prefix: str) -> ListedChunk:
    """
    Split a listed key into its index and encoded payload, without decoding the payload.

    Raises MalformedKeyError if the key does not look like a chunk key,
    restore skips those keys rather than failing.
    """
    name = key.removeprefix(prefix).removeprefix("/")
    index_field, separator, encoded_payload = name.partition(INDEX_SEPARATOR)
    if not separator:
        raise MalformedKeyError(key=key)

    # int() would also accept "+1", " 1" or "1_000".
    if not index_field.isascii() or not index_field.isdigit():
        raise MalformedKeyError(key=key)

    return ListedChunk(index=int(index_field), encoded_payload=encoded_payload, key=key)


def decode_key(key: str, prefix: str) -> tuple[int, bytes]:
    """
    Full inverse of encode_key: returns the chunk index and its raw payload.

    MalformedKeyError means "not a chunk key", PayloadDecodeError means "a chunk key, but corrupted".
    """
    listed_chunk = parse_key(key=key, prefix=prefix)
    return listed_chunk.index, decode_payload(listed_chunk.encoded_payload, index=listed_chunk.index)
