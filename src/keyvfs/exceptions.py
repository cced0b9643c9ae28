"""
Custom exceptions for the keyvfs package.

These are raised by lower-level functions/methods which understand the context of the error.

Note: By adding the `__str__` method to each exception,
we ensure that when you manually raise a specific exception the error message looks good
"""

from pathlib import Path


class KeyVFSError(Exception):
    """Base exception for all keyvfs errors."""

    pass


class InvalidLocationError(KeyVFSError, ValueError):
    """Raised when a store location string does not start with the required 's3://' scheme marker."""

    def __init__(self, location: str, reason: str = "must start with 's3://'"):
        error_message = f"Invalid store location '{location}': {reason}."
        super().__init__(error_message)
        self.location = location
        self.error_message = error_message

    def __str__(self):
        return self.error_message


class SizingError(KeyVFSError, ValueError):
    """
    Raised when the namespace prefix leaves no room for any chunk payload in a key,
    or when a file would need more chunks than the index field can address.
    """

    def __init__(self, error_message: str):
        super().__init__(error_message)
        self.error_message = error_message

    def __str__(self):
        return self.error_message


class MalformedKeyError(KeyVFSError, ValueError):
    """
    Raised when a listed key does not have the '<index>-<payload>' shape.

    Restore treats these keys as foreign and skips them, so this never reaches the user.
    """

    def __init__(self, key: str):
        error_message = f"The key '{key}' is not a chunk key."
        super().__init__(error_message)
        self.key = key
        self.error_message = error_message

    def __str__(self):
        return self.error_message


class PayloadDecodeError(KeyVFSError, ValueError):
    """Raised when a key has the chunk key shape but its payload segment can not be decoded."""

    def __init__(self, index: int, reason: str):
        error_message = f"The payload of chunk {index} could not be decoded: {reason}"
        super().__init__(error_message)
        self.index = index
        self.reason = reason
        self.error_message = error_message

    def __str__(self):
        return self.error_message


class DuplicateChunkIndexError(KeyVFSError, ValueError):
    """
    Raised on restore when two chunk keys under the same prefix share an index.

    This happens if a file was encoded into a namespace that already held chunks.
    """

    def __init__(self, bucket_name: str, prefix: str, duplicate_indices: list[int]):
        shown = ", ".join(str(index) for index in duplicate_indices[:10])
        if len(duplicate_indices) > 10:
            shown += ", ..."
        error_message = (
            f"In the bucket: '{bucket_name}', under the prefix: '{prefix}'\n"
            f"More than one chunk key was found for the indices: {shown}\n"
            "The namespace holds more than one encoded file. Delete it and encode again."
        )
        super().__init__(error_message)
        self.bucket_name = bucket_name
        self.prefix = prefix
        self.duplicate_indices = duplicate_indices
        self.error_message = error_message

    def __str__(self):
        return self.error_message


class NamespaceNotEmptyError(KeyVFSError, FileExistsError):
    """
    Raised when trying to encode a file into a namespace that already contains keys,
    and the user did not ask to replace them.
    """

    def __init__(self, bucket_name: str, prefix: str, existing_key_count: int):
        error_message = (
            f"In the bucket: '{bucket_name}', the prefix: '{prefix}' already contains {existing_key_count} key(s).\n"
            "Encoding into it would mix two files. Delete the prefix first or pass '--force' to replace it."
        )
        super().__init__(error_message)
        self.bucket_name = bucket_name
        self.prefix = prefix
        self.existing_key_count = existing_key_count
        self.error_message = error_message

    def __str__(self):
        return self.error_message


class TransferError(KeyVFSError):
    """Raised when a call to the object store (put/list/delete) fails."""

    def __init__(self, operation: str, bucket_name: str, details: str):
        error_message = f"S3 {operation} on bucket '{bucket_name}' failed: {details}"
        super().__init__(error_message)
        self.operation = operation
        self.bucket_name = bucket_name
        self.details = details
        self.error_message = error_message

    def __str__(self):
        return self.error_message


class LocalIOError(KeyVFSError, OSError):
    """Raised when the local source file can not be read or the destination file can not be written."""

    def __init__(self, file_path: Path, action: str, details: str):
        error_message = f"Could not {action} the local file '{file_path}': {details}"
        super().__init__(error_message)
        self.file_path = file_path
        self.action = action
        self.details = details
        self.error_message = error_message

    def __str__(self):
        return self.error_message


class CredentialsNotFoundError(KeyVFSError):
    """
    Raised when only one of the access key and secret key environment variables is set.
    """

    def __init__(self, access_key_name: str, secret_key_name: str):
        error_message = (
            "\n"
            "Only one of your S3 access key and secret key was found in your environment variables.\n"
            f"Please ensure that both '{access_key_name}' and '{secret_key_name}' are set,\n"
            "or unset both to use the default AWS credential chain.\n"
            "The simplest way to do this is to create a .env file in the directory you run your commands from.\n"
        )
        super().__init__(error_message)
        self.access_key_name = access_key_name
        self.secret_key_name = secret_key_name
        self.error_message = error_message

    def __str__(self):
        return self.error_message
