"""
Splits a local file into ordered, indexed chunks.

The chunk index is the only thing that records where a chunk's bytes belong in the file,
so indices start at 1 and go up by one in the order the file is read.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator

from keyvfs.exceptions import LocalIOError, SizingError
from keyvfs.key_codec import MAX_CHUNK_INDEX

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Chunk:
    """One slice of a file. Only the last chunk of a file may be shorter than the chunk size."""

    index: int
    payload: bytes


def count_chunks(file_size: int, chunk_size: int) -> int:
    """Number of chunks a file of 'file_size' bytes is split into. An empty file has no chunks."""
    return -(-file_size // chunk_size)


def split_stream(source: BinaryIO, chunk_size: int) -> Iterator[Chunk]:
    """
    Lazily read 'source' in 'chunk_size' byte blocks until it is exhausted.

    Only one block is read per chunk yielded, so memory use is bounded by how many chunks
    the caller keeps alive at once.
    """
    if chunk_size < 1:
        raise SizingError(f"Chunk size must be at least 1 byte, got {chunk_size}.")

    index = 0
    while True:
        payload = _read_block(source, chunk_size)
        if not payload:
            return
        index += 1
        yield Chunk(index=index, payload=payload)


def _read_block(source: BinaryIO, size: int) -> bytes:
    """
    Read exactly 'size' bytes unless the end of the stream is reached.
    Raw/unbuffered streams may return short reads, which would otherwise produce undersized chunks mid-file.
    """
    block = source.read(size)
    while block and len(block) < size:
        more = source.read(size - len(block))
        if not more:
            break
        block += more
    return block


def split_file(file_path: Path, chunk_size: int) -> Iterator[Chunk]:
    """
    Lazily split a file on disk into chunks.

    Refuses (before reading anything) a file that would need more chunks than the index field can hold.
    Any OSError from opening or reading the file is raised as a LocalIOError.
    """
    try:
        file_size = file_path.stat().st_size
    except OSError as err:
        raise LocalIOError(file_path=file_path, action="read", details=str(err)) from err

    total_chunks = count_chunks(file_size=file_size, chunk_size=chunk_size)
    if total_chunks > MAX_CHUNK_INDEX:
        raise SizingError(
            f"The file '{file_path}' ({file_size} bytes) would need {total_chunks} chunks of {chunk_size} bytes, "
            f"but at most {MAX_CHUNK_INDEX} chunks can be stored under one prefix. Use a shorter prefix."
        )

    return _split_open_file(file_path=file_path, chunk_size=chunk_size)


def _split_open_file(file_path: Path, chunk_size: int) -> Iterator[Chunk]:
    try:
        with file_path.open(mode="rb") as source:
            yield from split_stream(source, chunk_size)
    except OSError as err:
        raise LocalIOError(file_path=file_path, action="read", details=str(err)) from err
