"""
Puts recovered chunks back into file order and writes them out.

A listing comes back in whatever order the store likes (S3 sorts keys lexically, so "10-..." comes before "2-..."),
the chunk index is what decides the byte order.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from keyvfs.exceptions import LocalIOError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecoveredChunk:
    """A chunk decoded from a listed key."""

    index: int
    payload: bytes


def find_duplicate_indices(indices: Iterable[int]) -> list[int]:
    """Sorted list of the indices that appear more than once."""
    return sorted(index for index, count in Counter(indices).items() if count > 1)


def find_missing_indices(indices: Iterable[int]) -> list[int]:
    """
    Indices between 1 and the highest index seen that have no chunk.

    Restore does not fail on these (a missing chunk just gives a shorter file),
    but they are worth warning about.
    """
    present = set(indices)
    if not present:
        return []
    return [index for index in range(1, max(present) + 1) if index not in present]


def order_chunks(recovered: Iterable[RecoveredChunk]) -> list[RecoveredChunk]:
    """Sort recovered chunks by index. Duplicate indices must be rejected before calling this."""
    return sorted(recovered, key=lambda chunk: chunk.index)


def reconstruct(recovered: Iterable[RecoveredChunk]) -> bytes:
    """Concatenate the payloads of the recovered chunks in index order."""
    return b"".join(chunk.payload for chunk in order_chunks(recovered))


def write_chunks(recovered: Iterable[RecoveredChunk], output_path: Path) -> int:
    """
    Write the recovered chunks to 'output_path' in index order, creating parent directories as needed.
    Returns the number of bytes written.

    Writing no chunks at all still creates an empty file.
    """
    ordered = order_chunks(recovered)
    bytes_written = 0
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open(mode="wb") as out:
            for chunk in ordered:
                out.write(chunk.payload)
                bytes_written += len(chunk.payload)
    except OSError as err:
        raise LocalIOError(file_path=output_path, action="write", details=str(err)) from err

    logger.debug(f"Wrote {len(ordered)} chunk(s), {bytes_written} bytes, to '{output_path}'.")
    return bytes_written
