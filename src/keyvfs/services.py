"""
Service layer for keyvfs: encode a file into a namespace, restore it, delete it or describe it.

Each command parses the location, does all listing up front (sequentially),
then hands the per-chunk work (uploads and payload decoding) to the ConcurrentTransferEngine.
Deletes are not per-chunk work: each listing page is one batch, and batches run one at a time.
None of these functions read environment variables, the store and engine are passed in by the caller.
"""

import functools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from keyvfs.chunking import Chunk, count_chunks, split_file
from keyvfs.exceptions import (
    DuplicateChunkIndexError,
    LocalIOError,
    MalformedKeyError,
    NamespaceNotEmptyError,
    TransferError,
)
from keyvfs.key_codec import (
    S3_MAX_KEY_LENGTH,
    ListedChunk,
    decode_payload,
    encode_key,
    parse_key,
    plan_chunk_size,
)
from keyvfs.namespace import Namespace, parse_location
from keyvfs.reconstruction import RecoveredChunk, find_duplicate_indices, find_missing_indices, write_chunks
from keyvfs.s3_client import MAX_PAGE_SIZE, S3KeyStore
from keyvfs.transfer_engine import ConcurrentTransferEngine

logger = logging.getLogger(__name__)

# Called with (tasks finished so far, total tasks).
Progress = Callable[[int, int], None]


@dataclass
class EncodeResult:
    """Summary of encoding one file into a namespace."""

    namespace: Namespace
    chunk_size: int
    file_size: int
    uploaded_keys: int
    replaced_keys: int = 0


@dataclass
class RestoreResult:
    """Summary of restoring one file from a namespace."""

    namespace: Namespace
    output_path: Path
    restored_chunks: int
    bytes_written: int
    skipped_foreign_keys: int = 0
    missing_indices: list[int] = field(default_factory=list)


@dataclass
class DeleteResult:
    """Summary of deleting (or dry-run deleting) everything under a namespace."""

    namespace: Namespace
    listed_keys: list[str]
    deleted_count: int
    batches: int
    dry_run: bool = False


@dataclass
class NamespaceInfo:
    """What a listing of a namespace looks like, without decoding any payloads."""

    namespace: Namespace
    chunk_count: int
    foreign_key_count: int
    payload_bytes: int
    lowest_index: int | None
    highest_index: int | None
    duplicate_indices: list[int] = field(default_factory=list)
    missing_indices: list[int] = field(default_factory=list)


def encode_file_command(
    store: S3KeyStore,
    engine: ConcurrentTransferEngine,
    input_path: Path,
    location: str,
    force: bool = False,
    max_key_length: int = S3_MAX_KEY_LENGTH,
    progress: Progress | None = None,
) -> EncodeResult:
    """
    Split 'input_path' into chunks and store every chunk as an empty object whose key holds the data.

    If the namespace already holds keys, NamespaceNotEmptyError is raised unless 'force' is set,
    in which case the existing keys are deleted first.
    An empty file uploads nothing.
    """
    namespace = parse_location(location)
    chunk_size = plan_chunk_size(prefix=namespace.prefix, max_key_length=max_key_length)

    if not input_path.is_file():
        raise LocalIOError(file_path=input_path, action="read", details="it does not exist or is not a file.")

    # split_file checks the chunk count fits in the index field before anything is read or uploaded.
    chunks = split_file(file_path=input_path, chunk_size=chunk_size)
    file_size = input_path.stat().st_size
    total_chunks = count_chunks(file_size=file_size, chunk_size=chunk_size)

    replaced_keys = 0
    existing_pages = list(store.iter_key_pages(bucket_name=namespace.bucket_name, prefix=namespace.prefix))
    if existing_pages:
        existing_key_count = sum(len(page) for page in existing_pages)
        if not force:
            raise NamespaceNotEmptyError(
                bucket_name=namespace.bucket_name, prefix=namespace.prefix, existing_key_count=existing_key_count
            )
        logger.info(f"Replacing {existing_key_count} existing key(s) under '{namespace.location}'.")
        replaced_keys = _delete_pages(store=store, namespace=namespace, pages=existing_pages)

    logger.info(
        f"Encoding '{input_path}' ({file_size} bytes) into {total_chunks} key(s) "
        f"of up to {chunk_size} bytes under '{namespace.location}'."
    )
    tasks = (
        functools.partial(
            _upload_chunk,
            store=store,
            namespace=namespace,
            chunk=chunk,
            max_key_length=max_key_length,
        )
        for chunk in chunks
    )
    outcome = engine.run(tasks, on_task_done=_task_progress(progress, total_chunks))
    outcome.raise_first_error()

    return EncodeResult(
        namespace=namespace,
        chunk_size=chunk_size,
        file_size=file_size,
        uploaded_keys=len(outcome.results),
        replaced_keys=replaced_keys,
    )


def restore_file_command(
    store: S3KeyStore,
    engine: ConcurrentTransferEngine,
    location: str,
    output_path: Path,
    progress: Progress | None = None,
) -> RestoreResult:
    """
    Rebuild a file from the chunk keys under a namespace and write it to 'output_path'.

    Keys that don't look like chunk keys are skipped. Two keys with the same index raise DuplicateChunkIndexError.
    The output file is only created once every payload has been decoded, so a failed restore leaves no file behind.
    """
    namespace = parse_location(location)
    all_keys = store.list_keys(bucket_name=namespace.bucket_name, prefix=namespace.prefix)

    listed_chunks, foreign_keys = _parse_listing(keys=all_keys, namespace=namespace)
    indices = [listed_chunk.index for listed_chunk in listed_chunks]

    duplicate_indices = find_duplicate_indices(indices)
    if duplicate_indices:
        raise DuplicateChunkIndexError(
            bucket_name=namespace.bucket_name, prefix=namespace.prefix, duplicate_indices=duplicate_indices
        )

    missing_indices = find_missing_indices(indices)
    if missing_indices:
        logger.warning(
            f"{len(missing_indices)} chunk(s) are missing under '{namespace.location}' "
            f"(first missing indices: {missing_indices[:10]}), the restored file will be incomplete."
        )

    listed_chunks.sort(key=lambda listed_chunk: listed_chunk.index)
    logger.info(f"Restoring {len(listed_chunks)} chunk(s) from '{namespace.location}' to '{output_path}'.")

    tasks = (functools.partial(_download_chunk, listed_chunk=listed_chunk) for listed_chunk in listed_chunks)
    outcome = engine.run(tasks, on_task_done=_task_progress(progress, len(listed_chunks)))
    outcome.raise_first_error()

    bytes_written = write_chunks(recovered=outcome.results, output_path=output_path)

    return RestoreResult(
        namespace=namespace,
        output_path=output_path,
        restored_chunks=len(outcome.results),
        bytes_written=bytes_written,
        skipped_foreign_keys=len(foreign_keys),
        missing_indices=missing_indices,
    )


def delete_namespace_command(
    store: S3KeyStore,
    location: str,
    dry_run: bool = False,
    page_size: int = MAX_PAGE_SIZE,
    progress: Progress | None = None,
) -> DeleteResult:
    """
    Delete every key under a namespace (chunk keys and foreign keys alike).

    The listing is fully paged through first, then each page is deleted as one batch.
    Batches are issued one at a time and the first failing batch stops the delete.
    'dry_run' mode lists what would be deleted without deleting anything.
    """
    namespace = parse_location(location)
    if not namespace.prefix:
        logger.warning(f"No prefix given, every key in the bucket '{namespace.bucket_name}' will be deleted.")

    pages = list(store.iter_key_pages(bucket_name=namespace.bucket_name, prefix=namespace.prefix, page_size=page_size))
    listed_keys = [key for page in pages for key in page]

    if dry_run:
        return DeleteResult(
            namespace=namespace, listed_keys=listed_keys, deleted_count=0, batches=len(pages), dry_run=True
        )

    deleted_count = _delete_pages(store=store, namespace=namespace, pages=pages, progress=progress)
    return DeleteResult(namespace=namespace, listed_keys=listed_keys, deleted_count=deleted_count, batches=len(pages))


def namespace_info_command(store: S3KeyStore, location: str) -> NamespaceInfo:
    """
    Describe the chunks stored under a namespace.
    Payload sizes are worked out from the encoded lengths, nothing is decoded.
    """
    namespace = parse_location(location)
    all_keys = store.list_keys(bucket_name=namespace.bucket_name, prefix=namespace.prefix)
    listed_chunks, foreign_keys = _parse_listing(keys=all_keys, namespace=namespace)
    indices = [listed_chunk.index for listed_chunk in listed_chunks]

    return NamespaceInfo(
        namespace=namespace,
        chunk_count=len(listed_chunks),
        foreign_key_count=len(foreign_keys),
        payload_bytes=sum(len(listed_chunk.encoded_payload) * 3 // 4 for listed_chunk in listed_chunks),
        lowest_index=min(indices, default=None),
        highest_index=max(indices, default=None),
        duplicate_indices=find_duplicate_indices(indices),
        missing_indices=find_missing_indices(indices),
    )


def _upload_chunk(store: S3KeyStore, namespace: Namespace, chunk: Chunk, max_key_length: int) -> str:
    """Upload one chunk as an empty object, returns its key."""
    key = encode_key(index=chunk.index, payload=chunk.payload, prefix=namespace.prefix, max_key_length=max_key_length)
    return store.put_empty_object(bucket_name=namespace.bucket_name, key=key)


def _download_chunk(listed_chunk: ListedChunk) -> RecoveredChunk:
    """
    'Download' one chunk. As the object bodies are empty,
    the listing already holds the data and this is just decoding the payload out of the key.
    """
    payload = decode_payload(listed_chunk.encoded_payload, index=listed_chunk.index)
    return RecoveredChunk(index=listed_chunk.index, payload=payload)


def _parse_listing(keys: list[str], namespace: Namespace) -> tuple[list[ListedChunk], list[str]]:
    """Split a listing into chunk keys and foreign keys."""
    listed_chunks, foreign_keys = [], []
    for key in keys:
        try:
            listed_chunks.append(parse_key(key=key, prefix=namespace.prefix))
        except MalformedKeyError:
            logger.debug(f"Skipping key '{key}' as it is not a chunk key.")
            foreign_keys.append(key)

    if foreign_keys:
        logger.info(f"Skipped {len(foreign_keys)} key(s) under '{namespace.location}' that are not chunk keys.")
    return listed_chunks, foreign_keys


def _delete_pages(
    store: S3KeyStore,
    namespace: Namespace,
    pages: list[list[str]],
    progress: Progress | None = None,
) -> int:
    """
    Delete each page of keys as one batch, one batch after the other.
    Returns how many keys were deleted.

    A failing batch is raised straight away, the batches after it are never issued.
    """
    deleted_count = 0
    for batch_number, page in enumerate(pages, start=1):
        try:
            deleted_keys = store.delete_keys(bucket_name=namespace.bucket_name, keys=page)
        except TransferError:
            logger.error(
                f"Batch {batch_number} of {len(pages)} under '{namespace.location}' failed, "
                f"{deleted_count} key(s) had been deleted before it."
            )
            raise
        deleted_count += len(deleted_keys)
        if progress is not None:
            progress(batch_number, len(pages))

    logger.info(f"Deleted {deleted_count} key(s) under '{namespace.location}' in {len(pages)} batch(es).")
    return deleted_count


def _task_progress(progress: Progress | None, total: int) -> Callable[[int, int], None] | None:
    """Adapt a (finished, total) progress callback to the engine's (finished, task index) callback."""
    if progress is None:
        return None

    def on_task_done(finished: int, _index: int) -> None:
        progress(finished, total)

    return on_task_done
