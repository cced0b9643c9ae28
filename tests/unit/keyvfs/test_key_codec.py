"""
Unit tests for the key_codec module: chunk size planning and the key <-> (index, payload) mapping.
"""

import pytest

from keyvfs.exceptions import MalformedKeyError, PayloadDecodeError, SizingError
from keyvfs.key_codec import (
    MAX_CHUNK_INDEX,
    RESERVED_KEY_LENGTH,
    S3_MAX_KEY_LENGTH,
    ListedChunk,
    decode_key,
    decode_payload,
    encode_key,
    encode_payload,
    parse_key,
    plan_chunk_size,
)


def test_reserved_length_covers_six_digit_index_and_separator():
    assert RESERVED_KEY_LENGTH == 7
    assert MAX_CHUNK_INDEX == 999_999


def test_plan_chunk_size_small_key_limit():
    """30 byte keys with prefix 'p/': 30 - 2 - 7 = 21 characters left, 21 * 3 // 4 = 15 bytes."""
    assert plan_chunk_size(prefix="p/", max_key_length=30) == 15


def test_plan_chunk_size_s3_default():
    assert plan_chunk_size(prefix="") == (S3_MAX_KEY_LENGTH - RESERVED_KEY_LENGTH) * 3 // 4 == 762


def test_plan_chunk_size_rounds_down():
    """22 characters available: 16.5 bytes must become 16, never 17."""
    assert plan_chunk_size(prefix="a", max_key_length=30) == 16


def test_plan_chunk_size_counts_prefix_in_utf8_bytes():
    # "å" is 2 bytes in UTF-8
    assert plan_chunk_size(prefix="å/", max_key_length=30) == plan_chunk_size(prefix="ab/", max_key_length=30)


@pytest.mark.parametrize("prefix_length", [23, 24, 100])
def test_plan_chunk_size_fails_when_prefix_leaves_no_room(prefix_length):
    with pytest.raises(SizingError, match="too long"):
        plan_chunk_size(prefix="a" * prefix_length, max_key_length=30)


def test_plan_chunk_size_fails_when_room_is_less_than_one_byte():
    """1 character left is not enough for a single base64 encoded byte."""
    with pytest.raises(SizingError, match="not enough"):
        plan_chunk_size(prefix="a" * 22, max_key_length=30)


def test_plan_chunk_size_just_below_the_boundary():
    assert plan_chunk_size(prefix="a" * 21, max_key_length=30) == 1


@pytest.mark.parametrize("prefix_length", [0, 1, 2, 10, 100, 500, 900, 1000, 1015])
def test_keys_never_exceed_the_limit(prefix_length):
    """A full size chunk with the largest possible index must still fit in the key limit."""
    prefix = "x" * max(prefix_length - 1, 0) + ("/" if prefix_length else "")
    chunk_size = plan_chunk_size(prefix=prefix)

    key = encode_key(index=MAX_CHUNK_INDEX, payload=b"\xff" * chunk_size, prefix=prefix)

    assert len(key.encode("utf-8")) <= S3_MAX_KEY_LENGTH


def test_encode_key_example():
    key = encode_key(index=1, payload=b"0123456789", prefix="p/", max_key_length=30)
    assert key == "p/1-MDEyMzQ1Njc4OQ"
    assert len(key) <= 30


@pytest.mark.parametrize("prefix, expected", [("p/", "p/7-AA"), ("p", "p/7-AA"), ("", "7-AA")])
def test_encode_key_joins_prefix_like_a_path(prefix, expected):
    assert encode_key(index=7, payload=b"\x00", prefix=prefix) == expected


def test_encode_payload_is_url_safe_and_unpadded():
    encoded = encode_payload(b"\xfb\xff\xbf")
    assert encoded == "-_-_"

    encoded = encode_payload(b"\xfb\xff")
    assert "=" not in encoded
    assert "+" not in encoded
    assert "/" not in encoded


@pytest.mark.parametrize("index", [0, -1, MAX_CHUNK_INDEX + 1])
def test_encode_key_rejects_indices_outside_the_index_field(index):
    with pytest.raises(SizingError):
        encode_key(index=index, payload=b"a", prefix="p/")


def test_encode_key_rejects_oversized_payload():
    chunk_size = plan_chunk_size(prefix="p/", max_key_length=30)
    with pytest.raises(SizingError, match="would be"):
        encode_key(index=100_000, payload=b"a" * (chunk_size + 3), prefix="p/", max_key_length=30)


@pytest.mark.parametrize(
    "payload",
    [b"", b"a", b"ab", b"abc", b"\x00\xff\x10-_", bytes(range(256))],
)
def test_decode_key_inverts_encode_key(payload):
    key = encode_key(index=42, payload=payload, prefix="some/prefix/")
    assert decode_key(key, prefix="some/prefix/") == (42, payload)


def test_parse_key_splits_on_first_separator_only():
    listed = parse_key("p/12-ab-c_d", prefix="p/")
    assert listed == ListedChunk(index=12, encoded_payload="ab-c_d", key="p/12-ab-c_d")


def test_parse_key_tolerates_prefix_without_trailing_slash():
    assert parse_key("p/3-AA", prefix="p").index == 3


@pytest.mark.parametrize(
    "key",
    [
        "p/notes.txt",
        "p/abc-def",
        "p/-AAAA",
        "p/+1-AAAA",
        "p/1_000-AAAA",
        "p/ 1-AAAA",
        "p/١-AAAA",  # non-ascii digit
        "p/sub/1-AAAA",
        "p/",
    ],
)
def test_parse_key_rejects_foreign_keys(key):
    with pytest.raises(MalformedKeyError):
        parse_key(key, prefix="p/")


@pytest.mark.parametrize(
    "encoded_payload",
    [
        "ab+c",  # standard base64 alphabet, not the URL-safe one
        "ab/c",
        "abc=",  # padding is never written
        "abcde",  # 5 characters can not come from any byte string
        "AB",  # non-canonical, the canonical encoding of b"\x00" is "AA"
        "a b",
    ],
)
def test_decode_payload_is_strict(encoded_payload):
    with pytest.raises(PayloadDecodeError):
        decode_payload(encoded_payload, index=5)


def test_decode_key_reports_corrupted_payload_with_its_index():
    with pytest.raises(PayloadDecodeError, match="chunk 3"):
        decode_key("p/3-a", prefix="p/")
